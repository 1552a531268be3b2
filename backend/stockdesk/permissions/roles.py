# Overview: Default permission sets per role name issued by the identity provider.

from .definitions import PERMISSION_DEFINITIONS


ADMIN_ROLE = "admin"
STAFF_ROLE = "staff"
VIEWER_ROLE = "viewer"

DEFAULT_ROLE_PERMISSIONS = {
    ADMIN_ROLE: {perm[0] for perm in PERMISSION_DEFINITIONS},
    STAFF_ROLE: {
        "VIEW_INVENTORY",
        "POST_SALE",
        "VIEW_SALES",
        "EDIT_SALE",
        "VIEW_REPORTS",
        "MANAGE_NOTIFICATIONS",
    },
    VIEWER_ROLE: {
        "VIEW_INVENTORY",
        "VIEW_SALES",
        "VIEW_REPORTS",
    },
}
