# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Principal Resolution, Capability Enforcement and Audit Logging

WHY: Route guards need the same Principal the client sees on /auth/me, so
server-side checks and client-side offers never disagree. Denials are
written to the audit log for security monitoring.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Grants are not logged
- One resolution path: role bundle, then per-user GRANT/DENY overrides
"""

from ..errors import Forbidden, ValidationFailed
from ..extensions import db
from ..models import User, Permission, AuditLog, UserPermissionOverride
from ..permissions import (
    AuthorizationModel,
    DEFAULT_ROLE_NAME,
    PERMISSION_DEFINITIONS,
    Principal,
    group_by_module,
    validate_permission_key,
)
from permitflow.time_utils import utcnow


def log_audit_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditLog:
    """
    Append an event to the audit log.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - PERMIT_CREATED / PERMIT_UPDATED / PERMIT_DELETED
    - ROLE_CREATED / ROLE_UPDATED / ROLE_DELETED / ROLE_ASSIGNED
    """
    event = AuditLog(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user: User) -> set[str]:
    """
    Permission keys granted to a user.

    Role bundle first, then active overrides: GRANT adds, DENY removes
    (DENY applied last so it wins).
    """
    permission_keys: set[str] = set()

    if user.role is not None and user.role.is_active:
        permission_keys.update(user.role.permissions or [])

    overrides = db.session.query(UserPermissionOverride).filter_by(
        user_id=user.id,
        is_active=True,
    ).all()

    for override in overrides:
        if override.override_type == "GRANT":
            permission_keys.add(override.permission_key)
    for override in overrides:
        if override.override_type == "DENY":
            permission_keys.discard(override.permission_key)

    return permission_keys


def build_principal(user: User) -> Principal:
    """Resolve the Principal snapshot for a user (role aliases resolved here)."""
    role = user.role
    return Principal.build(
        user.id,
        role.name if role is not None else DEFAULT_ROLE_NAME,
        get_user_permissions(user),
        is_active=user.is_active,
        email=user.email,
        name=user.full_name,
        role_display_name=role.display_name if role is not None else None,
        ui_config=role.ui_config if role is not None else None,
    )


def get_authorization(user: User | None) -> AuthorizationModel:
    if user is None:
        return AuthorizationModel(None)
    return AuthorizationModel(build_principal(user))


def require_capability(
    authz: AuthorizationModel,
    capability: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require the principal to hold a capability, raise Forbidden if not.

    Denials are logged to the audit log.
    """
    if authz.check(capability):
        return

    log_audit_event(
        user_id=authz.principal.id if authz.principal else None,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=capability,
        reason=f"Missing capability: {capability}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise Forbidden(f"Permission denied: {capability}", details={"required_capability": capability})


def initialize_permissions() -> int:
    """
    Create Permission records for every key in PERMISSION_DEFINITIONS.

    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for key, name, module, action in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(key=key).first()

        if not existing:
            db.session.add(Permission(key=key, name=name, module=module, action=action))
            created_count += 1

    db.session.commit()
    return created_count


def get_permission_catalogue() -> dict:
    """Flat list plus the same list grouped by module."""
    permissions = [
        p.to_dict()
        for p in db.session.query(Permission)
        .filter_by(is_active=True)
        .order_by(Permission.module, Permission.id)
        .all()
    ]
    return {
        "permissions": permissions,
        "grouped": group_by_module(permissions),
    }


def grant_permission_override(
    *,
    user_id: int,
    permission_key: str,
    override_type: str,
    granted_by_user_id: int | None = None,
    reason: str | None = None,
) -> UserPermissionOverride:
    """
    Grant or deny a permission via per-user override.

    override_type must be "GRANT" or "DENY".
    """
    if override_type not in {"GRANT", "DENY"}:
        raise ValidationFailed("override_type must be GRANT or DENY")

    if not validate_permission_key(permission_key):
        raise ValidationFailed(f"Permission '{permission_key}' not found")

    override = db.session.query(UserPermissionOverride).filter_by(
        user_id=user_id,
        permission_key=permission_key,
    ).first()

    if override:
        override.override_type = override_type
        override.granted_by_user_id = granted_by_user_id
        override.granted_at = utcnow()
        override.reason = reason
        override.is_active = True
    else:
        override = UserPermissionOverride(
            user_id=user_id,
            permission_key=permission_key,
            override_type=override_type,
            granted_by_user_id=granted_by_user_id,
            granted_at=utcnow(),
            reason=reason,
            is_active=True,
        )
        db.session.add(override)

    db.session.commit()
    return override


def revoke_permission_override(*, user_id: int, permission_key: str) -> UserPermissionOverride | None:
    override = db.session.query(UserPermissionOverride).filter_by(
        user_id=user_id,
        permission_key=permission_key,
        is_active=True,
    ).first()

    if not override:
        return None

    override.is_active = False
    db.session.commit()
    return override