# Overview: Service-layer operations for roles; encapsulates business logic and database work.

"""
Role Management Service

RULES:
1. Role names are upper-case and unique; a name cannot be changed once created.
2. System roles (ADMIN, FIREMAN, REQUESTOR) cannot be deleted and their
   permission bundle cannot be edited here. Display fields may be changed.
3. A role with assigned users cannot be deleted. Reassign users first.
4. Permission keys must exist in the catalogue.
"""

from ..errors import NotFound, ValidationFailed
from ..extensions import db
from ..models import Role, User
from ..permissions import (
    DEFAULT_ROLE_DEFINITIONS,
    DEFAULT_ROLE_PERMISSIONS,
    SYSTEM_ROLE_NAMES,
    canonical_role_name,
)
from ..validation import validate_role_payload
from . import permission_service


def initialize_default_roles() -> int:
    """
    Create the system roles with their default permission bundles.

    Idempotent: existing roles are left untouched.
    """
    created_count = 0

    for definition in DEFAULT_ROLE_DEFINITIONS:
        existing = db.session.query(Role).filter_by(name=definition["name"]).first()
        if existing:
            continue

        db.session.add(Role(
            name=definition["name"],
            display_name=definition["display_name"],
            description=definition["description"],
            permissions=list(DEFAULT_ROLE_PERMISSIONS.get(definition["name"], [])),
            ui_config=dict(definition["ui_config"]),
            is_system=True,
            is_active=True,
        ))
        created_count += 1

    db.session.commit()
    return created_count


def list_roles(*, include_inactive: bool = False) -> list[Role]:
    query = db.session.query(Role)
    if not include_inactive:
        query = query.filter(Role.is_active.is_(True))
    return query.order_by(Role.is_system.desc(), Role.name).all()


def get_role(role_id: int) -> Role:
    role = db.session.get(Role, role_id)
    if role is None:
        raise NotFound("Role not found")
    return role


def get_role_by_name(name: str) -> Role:
    role = db.session.query(Role).filter_by(name=canonical_role_name(name)).first()
    if role is None:
        raise NotFound(f"Role {name} not found")
    return role


def create_role(data: dict, *, actor_id: int | None = None) -> Role:
    cleaned = validate_role_payload(data)

    if cleaned["name"] in SYSTEM_ROLE_NAMES or canonical_role_name(cleaned["name"]) != cleaned["name"]:
        raise ValidationFailed("Role name is reserved")

    if db.session.query(Role).filter_by(name=cleaned["name"]).first():
        raise ValidationFailed("Role name already exists")

    role = Role(
        name=cleaned["name"],
        display_name=cleaned["display_name"],
        description=cleaned.get("description"),
        permissions=cleaned.get("permissions", []),
        ui_config=cleaned.get("ui_config", {}),
        is_system=False,
        is_active=True,
    )
    db.session.add(role)
    db.session.commit()

    permission_service.log_audit_event(
        user_id=actor_id,
        event_type="ROLE_CREATED",
        success=True,
        resource=f"role:{role.id}",
        action="CREATE",
        reason=f"{role.name}: {', '.join(role.permissions)}",
    )
    return role


def update_role(role_id: int, data: dict, *, actor_id: int | None = None) -> Role:
    role = get_role(role_id)
    cleaned = validate_role_payload(data, partial=True)

    if "name" in cleaned and cleaned["name"] != role.name:
        raise ValidationFailed("Role name cannot be changed")

    if role.is_system and "permissions" in cleaned and sorted(cleaned["permissions"]) != sorted(role.permissions or []):
        raise ValidationFailed("Permissions of system roles cannot be modified")

    previous = list(role.permissions or [])

    for key in ("display_name", "description", "permissions", "ui_config"):
        if key in cleaned:
            setattr(role, key, cleaned[key])

    db.session.commit()

    permission_service.log_audit_event(
        user_id=actor_id,
        event_type="ROLE_UPDATED",
        success=True,
        resource=f"role:{role.id}",
        action="UPDATE",
        reason=f"permissions {previous} -> {list(role.permissions or [])}",
    )
    return role


def delete_role(role_id: int, *, actor_id: int | None = None) -> None:
    role = get_role(role_id)

    if role.is_system:
        raise ValidationFailed("Cannot delete system roles")

    user_count = db.session.query(User).filter_by(role_id=role.id).count()
    if user_count > 0:
        raise ValidationFailed("Cannot delete role with assigned users. Reassign users first.")

    name = role.name
    db.session.delete(role)
    db.session.commit()

    permission_service.log_audit_event(
        user_id=actor_id,
        event_type="ROLE_DELETED",
        success=True,
        resource=f"role:{role_id}",
        action="DELETE",
        reason=name,
    )


def assign_role(user_id: int, role_id: int, *, actor_id: int | None = None) -> User:
    """
    Assign a role to a user.

    Takes effect on the user's next request; principals are resolved per request.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    role = get_role(role_id)

    user.role_id = role.id
    db.session.commit()

    permission_service.log_audit_event(
        user_id=actor_id,
        event_type="ROLE_ASSIGNED",
        success=True,
        resource=f"user:{user.id}",
        action="ASSIGN_ROLE",
        reason=role.name,
    )
    return user
