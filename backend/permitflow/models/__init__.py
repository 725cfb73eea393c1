from .auth import User, Role, Permission, SessionToken, UserPermissionOverride
from .permits import Permit, PermitApproval, PermitActionHistory, PermitSequence
from .audit import AuditLog

__all__ = [
    'User', 'Role', 'Permission', 'SessionToken', 'UserPermissionOverride',
    'Permit', 'PermitApproval', 'PermitActionHistory', 'PermitSequence',
    'AuditLog',
]
