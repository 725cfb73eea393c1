# Overview: Permission module constants for grouping related permission keys.


class PermissionModule:
    """Permission modules (the prefix of every `module.action` key)."""
    DASHBOARD = "dashboard"
    PERMITS = "permits"
    APPROVALS = "approvals"
    WORKERS = "workers"
    USERS = "users"
    ROLES = "roles"
    SETTINGS = "settings"
    AUDIT = "audit"


class PermissionAction:
    """Action categories used to order permissions inside a module."""
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"
    EXPORT = "export"
