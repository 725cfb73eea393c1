# Overview: System role names, legacy aliases, and default role bundles.

from .helpers import get_all_permission_keys


class SystemRole:
    """Built-in role names. These roles cannot be deleted or renamed."""
    ADMIN = "ADMIN"
    FIREMAN = "FIREMAN"
    REQUESTOR = "REQUESTOR"


# Legacy role names accepted when reading user records.
# Resolved once when a principal is loaded; business logic never sees them.
ROLE_ALIASES = {
    "SAFETY_OFFICER": SystemRole.FIREMAN,
}

SYSTEM_ROLE_NAMES = frozenset({SystemRole.ADMIN, SystemRole.FIREMAN, SystemRole.REQUESTOR})

# Users without a role record are treated as requestors.
DEFAULT_ROLE_NAME = SystemRole.REQUESTOR


def canonical_role_name(name):
    """Upper-case a raw role name and map legacy aliases to their canonical name."""
    if not name:
        return DEFAULT_ROLE_NAME
    upper = str(name).strip().upper()
    return ROLE_ALIASES.get(upper, upper)


DEFAULT_ROLE_PERMISSIONS = {
    # Admin gets ALL permissions
    SystemRole.ADMIN: get_all_permission_keys(),
    SystemRole.FIREMAN: [
        "dashboard.view",
        "dashboard.stats",
        "permits.view",
        "permits.view_all",
        "permits.export",
        "permits.extend",
        "permits.revoke",
        "permits.close",
        "permits.reapprove",
        "approvals.view",
        "approvals.approve",
        "approvals.sign",
        "approvals.reapprove",
        "workers.view",
        "workers.create",
        "workers.edit",
        "workers.qr",
        "settings.view",
    ],
    SystemRole.REQUESTOR: [
        "dashboard.view",
        "permits.view",
        "permits.view_own",
        "permits.create",
        "permits.edit_own",
        "permits.export",
        "workers.view",
        "workers.qr",
        "settings.view",
    ],
}


DEFAULT_ROLE_DEFINITIONS = [
    {
        "name": SystemRole.ADMIN,
        "display_name": "Administrator",
        "description": "Full system access with all permissions",
        "ui_config": {
            "theme": "default",
            "sidebarColor": "slate",
            "accentColor": "emerald",
            "showAllMenus": True,
        },
    },
    {
        "name": SystemRole.FIREMAN,
        "display_name": "Fireman",
        "description": "Can approve/reject permits, re-approve revoked permits, and manage workers",
        "ui_config": {
            "theme": "default",
            "sidebarColor": "slate",
            "accentColor": "blue",
            "showAllMenus": False,
        },
    },
    {
        "name": SystemRole.REQUESTOR,
        "display_name": "Requestor",
        "description": "Can create and view own permits",
        "ui_config": {
            "theme": "default",
            "sidebarColor": "slate",
            "accentColor": "primary",
            "showAllMenus": False,
        },
    },
]
