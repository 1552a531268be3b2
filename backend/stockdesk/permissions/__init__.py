# Overview: Permission system package.
# Re-exports all public APIs for backwards-compatible imports.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    REPORT_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, ADMIN_ROLE, STAFF_ROLE, VIEWER_ROLE
from .helpers import (
    get_all_permission_codes,
    validate_permission_code,
    permissions_for_role,
    role_has_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ADMIN_ROLE",
    "STAFF_ROLE",
    "VIEWER_ROLE",
    "get_all_permission_codes",
    "validate_permission_code",
    "permissions_for_role",
    "role_has_permission",
]
