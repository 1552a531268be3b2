# Overview: Lookups over the permission table and the role grants.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_permission_codes():
    return [code for code, _name, _description, _category in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    return code in get_all_permission_codes()


def permissions_for_role(role):
    """Codes granted to a role, in definition order. Unknown roles get none."""
    granted = DEFAULT_ROLE_PERMISSIONS.get(role, set())
    return [code for code in get_all_permission_codes() if code in granted]


def role_has_permission(role, code):
    return code in DEFAULT_ROLE_PERMISSIONS.get(role, set())
