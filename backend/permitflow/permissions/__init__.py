# Overview: Permission system package.
# Re-exports the public APIs so callers import from `permitflow.permissions`.

from .categories import PermissionModule, PermissionAction
from .definitions import (
    PERMISSION_DEFINITIONS,
    DASHBOARD_PERMISSIONS,
    PERMIT_PERMISSIONS,
    APPROVAL_PERMISSIONS,
    WORKER_PERMISSIONS,
    USER_PERMISSIONS,
    ROLE_PERMISSIONS,
    SETTINGS_PERMISSIONS,
    AUDIT_PERMISSIONS,
)
from .roles import (
    SystemRole,
    ROLE_ALIASES,
    SYSTEM_ROLE_NAMES,
    DEFAULT_ROLE_NAME,
    DEFAULT_ROLE_PERMISSIONS,
    DEFAULT_ROLE_DEFINITIONS,
    canonical_role_name,
)
from .helpers import (
    get_all_permission_keys,
    get_permissions_by_module,
    get_permission_definition,
    validate_permission_key,
    group_by_module,
)
from .capabilities import (
    EffectiveRole,
    Principal,
    Capability,
    CAPABILITIES,
    AuthorizationModel,
)

__all__ = [
    "PermissionModule",
    "PermissionAction",
    "PERMISSION_DEFINITIONS",
    "DASHBOARD_PERMISSIONS",
    "PERMIT_PERMISSIONS",
    "APPROVAL_PERMISSIONS",
    "WORKER_PERMISSIONS",
    "USER_PERMISSIONS",
    "ROLE_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "AUDIT_PERMISSIONS",
    "SystemRole",
    "ROLE_ALIASES",
    "SYSTEM_ROLE_NAMES",
    "DEFAULT_ROLE_NAME",
    "DEFAULT_ROLE_PERMISSIONS",
    "DEFAULT_ROLE_DEFINITIONS",
    "canonical_role_name",
    "get_all_permission_keys",
    "get_permissions_by_module",
    "get_permission_definition",
    "validate_permission_key",
    "group_by_module",
    "EffectiveRole",
    "Principal",
    "Capability",
    "CAPABILITIES",
    "AuthorizationModel",
]
