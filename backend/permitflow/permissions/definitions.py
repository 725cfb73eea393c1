# Overview: All permission definitions organized by module.
# Each permission is defined as: (key, name, module, action)

from .categories import PermissionModule, PermissionAction


# -- DASHBOARD --

DASHBOARD_PERMISSIONS = [
    ("dashboard.view", "View Dashboard", PermissionModule.DASHBOARD, PermissionAction.VIEW),
    ("dashboard.stats", "View Statistics", PermissionModule.DASHBOARD, PermissionAction.VIEW),
]


# -- PERMITS --

PERMIT_PERMISSIONS = [
    ("permits.view", "View Permits", PermissionModule.PERMITS, PermissionAction.VIEW),
    ("permits.view_all", "View All Permits", PermissionModule.PERMITS, PermissionAction.VIEW),
    ("permits.view_own", "View Own Permits", PermissionModule.PERMITS, PermissionAction.VIEW),
    ("permits.create", "Create Permits", PermissionModule.PERMITS, PermissionAction.CREATE),
    ("permits.edit", "Edit Permits", PermissionModule.PERMITS, PermissionAction.EDIT),
    ("permits.edit_own", "Edit Own Permits", PermissionModule.PERMITS, PermissionAction.EDIT),
    ("permits.delete", "Delete Permits", PermissionModule.PERMITS, PermissionAction.DELETE),
    ("permits.export", "Export Permits", PermissionModule.PERMITS, PermissionAction.EXPORT),
    ("permits.extend", "Extend Permits", PermissionModule.PERMITS, PermissionAction.EDIT),
    ("permits.revoke", "Revoke Permits", PermissionModule.PERMITS, PermissionAction.EDIT),
    ("permits.close", "Close Permits", PermissionModule.PERMITS, PermissionAction.EDIT),
    ("permits.reapprove", "Re-Approve Revoked Permits", PermissionModule.PERMITS, PermissionAction.EDIT),
    ("permits.transfer", "Transfer Permits", PermissionModule.PERMITS, PermissionAction.EDIT),
]


# -- APPROVALS --

APPROVAL_PERMISSIONS = [
    ("approvals.view", "View Approvals", PermissionModule.APPROVALS, PermissionAction.VIEW),
    ("approvals.approve", "Approve/Reject Permits", PermissionModule.APPROVALS, PermissionAction.APPROVE),
    ("approvals.sign", "Sign Approvals", PermissionModule.APPROVALS, PermissionAction.APPROVE),
    ("approvals.reapprove", "Re-Approve Revoked Permits", PermissionModule.APPROVALS, PermissionAction.APPROVE),
]


# -- WORKERS --

WORKER_PERMISSIONS = [
    ("workers.view", "View Workers", PermissionModule.WORKERS, PermissionAction.VIEW),
    ("workers.create", "Create Workers", PermissionModule.WORKERS, PermissionAction.CREATE),
    ("workers.edit", "Edit Workers", PermissionModule.WORKERS, PermissionAction.EDIT),
    ("workers.delete", "Delete Workers", PermissionModule.WORKERS, PermissionAction.DELETE),
    ("workers.qr", "Generate Worker QR", PermissionModule.WORKERS, PermissionAction.VIEW),
]


# -- USERS --

USER_PERMISSIONS = [
    ("users.view", "View Users", PermissionModule.USERS, PermissionAction.VIEW),
    ("users.create", "Create Users", PermissionModule.USERS, PermissionAction.CREATE),
    ("users.edit", "Edit Users", PermissionModule.USERS, PermissionAction.EDIT),
    ("users.delete", "Delete Users", PermissionModule.USERS, PermissionAction.DELETE),
    ("users.assign_role", "Assign Roles to Users", PermissionModule.USERS, PermissionAction.EDIT),
]


# -- ROLES --

ROLE_PERMISSIONS = [
    ("roles.view", "View Roles", PermissionModule.ROLES, PermissionAction.VIEW),
    ("roles.create", "Create Roles", PermissionModule.ROLES, PermissionAction.CREATE),
    ("roles.edit", "Edit Roles", PermissionModule.ROLES, PermissionAction.EDIT),
    ("roles.delete", "Delete Roles", PermissionModule.ROLES, PermissionAction.DELETE),
]


# -- SETTINGS / AUDIT --

SETTINGS_PERMISSIONS = [
    ("settings.view", "View Settings", PermissionModule.SETTINGS, PermissionAction.VIEW),
    ("settings.edit", "Edit Settings", PermissionModule.SETTINGS, PermissionAction.EDIT),
    ("settings.system", "System Settings", PermissionModule.SETTINGS, PermissionAction.EDIT),
]

AUDIT_PERMISSIONS = [
    ("audit.view", "View Audit Logs", PermissionModule.AUDIT, PermissionAction.VIEW),
]


PERMISSION_DEFINITIONS = (
    DASHBOARD_PERMISSIONS
    + PERMIT_PERMISSIONS
    + APPROVAL_PERMISSIONS
    + WORKER_PERMISSIONS
    + USER_PERMISSIONS
    + ROLE_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + AUDIT_PERMISSIONS
)
