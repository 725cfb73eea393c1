# Overview: Principal snapshot and capability predicates used by route guards and the client.

"""
Authorization Model

A Principal is a read-only snapshot of the signed-in actor: its canonical role
name, the effective role resolved from it, and the explicit permission keys
granted by its role bundle (plus any per-user grants).

Every capability predicate is evaluated in the same precedence order:

    1. no principal                          -> False
    2. effective role is privileged for it   -> True  (ADMINISTRATOR always,
                                                       APPROVER for the
                                                       approver shortcuts)
    3. any accepted permission key granted   -> True
    4. otherwise                             -> False

Predicates are total functions. They never raise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from .roles import SystemRole, canonical_role_name


class EffectiveRole(str, Enum):
    """Role variant resolved once from the raw role name."""
    ADMINISTRATOR = "ADMINISTRATOR"
    APPROVER = "APPROVER"
    REQUESTOR = "REQUESTOR"
    CUSTOM = "CUSTOM"

    @classmethod
    def resolve(cls, raw_role: Optional[str]) -> "EffectiveRole":
        name = canonical_role_name(raw_role)
        if name == SystemRole.ADMIN:
            return cls.ADMINISTRATOR
        if name == SystemRole.FIREMAN:
            return cls.APPROVER
        if name == SystemRole.REQUESTOR:
            return cls.REQUESTOR
        return cls.CUSTOM


@dataclass(frozen=True)
class Principal:
    id: Any
    role: str
    effective_role: EffectiveRole
    permissions: frozenset = field(default_factory=frozenset)
    is_active: bool = True
    email: Optional[str] = None
    name: Optional[str] = None
    role_display_name: Optional[str] = None
    ui_config: dict = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def build(
        cls,
        id: Any,
        role: Optional[str],
        permissions: Iterable[str] = (),
        *,
        is_active: bool = True,
        email: Optional[str] = None,
        name: Optional[str] = None,
        role_display_name: Optional[str] = None,
        ui_config: Optional[dict] = None,
    ) -> "Principal":
        canonical = canonical_role_name(role)
        return cls(
            id=id,
            role=canonical,
            effective_role=EffectiveRole.resolve(canonical),
            permissions=frozenset(permissions or ()),
            is_active=is_active,
            email=email,
            name=name,
            role_display_name=role_display_name,
            ui_config=dict(ui_config or {}),
        )

    @classmethod
    def from_dict(cls, payload: dict) -> "Principal":
        """Build from the `user` object returned by GET /api/auth/me."""
        return cls.build(
            payload.get("id"),
            payload.get("role"),
            payload.get("permissions") or (),
            is_active=bool(payload.get("is_active", True)),
            email=payload.get("email"),
            name=payload.get("name"),
            role_display_name=payload.get("role_display_name"),
            ui_config=payload.get("ui_config"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "effective_role": self.effective_role.value,
            "role_display_name": self.role_display_name,
            "permissions": sorted(self.permissions),
            "is_active": self.is_active,
            "ui_config": dict(self.ui_config),
        }


ADMIN_ONLY = frozenset({EffectiveRole.ADMINISTRATOR})
ADMIN_AND_APPROVER = frozenset({EffectiveRole.ADMINISTRATOR, EffectiveRole.APPROVER})


@dataclass(frozen=True)
class Capability:
    name: str
    permission_keys: tuple
    privileged_roles: frozenset = ADMIN_ONLY


CAPABILITY_DEFINITIONS = (
    # Approvals
    Capability("can_view_approvals", ("approvals.view",), ADMIN_AND_APPROVER),
    Capability("can_approve", ("approvals.approve",), ADMIN_AND_APPROVER),
    # TODO: settle which module owns re-approval; both keys are honoured until then.
    Capability("can_reapprove", ("approvals.reapprove", "permits.reapprove"), ADMIN_AND_APPROVER),
    Capability("can_sign_approvals", ("approvals.sign",), ADMIN_AND_APPROVER),
    # Permits
    Capability("can_view_all_permits", ("permits.view_all",), ADMIN_AND_APPROVER),
    Capability("can_create_permits", ("permits.create",)),
    Capability("can_edit_permits", ("permits.edit",)),
    Capability("can_delete_permits", ("permits.delete",), ADMIN_AND_APPROVER),
    Capability("can_extend_permits", ("permits.extend",), ADMIN_AND_APPROVER),
    Capability("can_revoke_permits", ("permits.revoke",), ADMIN_AND_APPROVER),
    Capability("can_close_permits", ("permits.close",), ADMIN_AND_APPROVER),
    Capability("can_export_permits", ("permits.export",), ADMIN_AND_APPROVER),
    # Users
    Capability("can_view_users", ("users.view",)),
    Capability("can_manage_users", ("users.view", "users.edit", "users.create", "users.delete")),
    Capability("can_create_users", ("users.create",)),
    Capability("can_edit_users", ("users.edit",)),
    Capability("can_delete_users", ("users.delete",)),
    Capability("can_assign_roles", ("users.assign_role",)),
    # Roles
    Capability("can_view_roles", ("roles.view",)),
    Capability("can_manage_roles", ("roles.create", "roles.edit", "roles.delete")),
    Capability("can_create_roles", ("roles.create",)),
    Capability("can_edit_roles", ("roles.edit",)),
    Capability("can_delete_roles", ("roles.delete",)),
    # Workers
    Capability("can_view_workers", ("workers.view",), ADMIN_AND_APPROVER),
    Capability("can_create_workers", ("workers.create",), ADMIN_AND_APPROVER),
    Capability("can_edit_workers", ("workers.edit",), ADMIN_AND_APPROVER),
    Capability("can_delete_workers", ("workers.delete",)),
    # Settings / audit / dashboard
    Capability("can_edit_settings", ("settings.edit",)),
    Capability("can_edit_system_settings", ("settings.system",)),
    Capability("can_view_audit_logs", ("audit.view",)),
    Capability("can_view_dashboard", ("dashboard.view",)),
    Capability("can_view_statistics", ("dashboard.stats",), ADMIN_AND_APPROVER),
)

CAPABILITIES = {cap.name: cap for cap in CAPABILITY_DEFINITIONS}


def _capability_predicate(name: str):
    def predicate(self) -> bool:
        return self.check(name)

    predicate.__name__ = name
    predicate.__doc__ = f"Capability predicate '{name}'."
    return predicate


class AuthorizationModel:
    """Capability queries over one Principal snapshot (or none)."""

    def __init__(self, principal: Optional[Principal] = None):
        self.principal = principal

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def is_admin(self) -> bool:
        return self._has_role(ADMIN_ONLY)

    @property
    def is_approver(self) -> bool:
        return self._has_role(frozenset({EffectiveRole.APPROVER}))

    @property
    def is_requestor(self) -> bool:
        return self._has_role(frozenset({EffectiveRole.REQUESTOR}))

    def _has_role(self, roles: frozenset) -> bool:
        return self.principal is not None and self.principal.effective_role in roles

    def has_permission(self, key: str) -> bool:
        if self.principal is None:
            return False
        if self.principal.effective_role is EffectiveRole.ADMINISTRATOR:
            return True
        return key in self.principal.permissions

    def has_any_permission(self, keys: Iterable[str]) -> bool:
        return any(self.has_permission(key) for key in keys)

    def check(self, capability: str) -> bool:
        """Evaluate a capability by name. Unknown capability names are denied."""
        cap = CAPABILITIES.get(capability)
        if cap is None or self.principal is None:
            return False
        if self.principal.effective_role in cap.privileged_roles:
            return True
        return self.has_any_permission(cap.permission_keys)

    def capabilities(self) -> dict:
        """Every capability evaluated, for session payloads and UI gating."""
        return {name: self.check(name) for name in CAPABILITIES}

    def is_owner(self, owner_id: Any) -> bool:
        return self.principal is not None and owner_id is not None and self.principal.id == owner_id

    can_view_approvals = _capability_predicate("can_view_approvals")
    can_approve = _capability_predicate("can_approve")
    can_reapprove = _capability_predicate("can_reapprove")
    can_sign_approvals = _capability_predicate("can_sign_approvals")
    can_view_all_permits = _capability_predicate("can_view_all_permits")
    can_create_permits = _capability_predicate("can_create_permits")
    can_edit_permits = _capability_predicate("can_edit_permits")
    can_delete_permits = _capability_predicate("can_delete_permits")
    can_extend_permits = _capability_predicate("can_extend_permits")
    can_revoke_permits = _capability_predicate("can_revoke_permits")
    can_close_permits = _capability_predicate("can_close_permits")
    can_export_permits = _capability_predicate("can_export_permits")
    can_view_users = _capability_predicate("can_view_users")
    can_manage_users = _capability_predicate("can_manage_users")
    can_create_users = _capability_predicate("can_create_users")
    can_edit_users = _capability_predicate("can_edit_users")
    can_delete_users = _capability_predicate("can_delete_users")
    can_assign_roles = _capability_predicate("can_assign_roles")
    can_view_roles = _capability_predicate("can_view_roles")
    can_manage_roles = _capability_predicate("can_manage_roles")
    can_create_roles = _capability_predicate("can_create_roles")
    can_edit_roles = _capability_predicate("can_edit_roles")
    can_delete_roles = _capability_predicate("can_delete_roles")
    can_view_workers = _capability_predicate("can_view_workers")
    can_create_workers = _capability_predicate("can_create_workers")
    can_edit_workers = _capability_predicate("can_edit_workers")
    can_delete_workers = _capability_predicate("can_delete_workers")
    can_edit_settings = _capability_predicate("can_edit_settings")
    can_edit_system_settings = _capability_predicate("can_edit_system_settings")
    can_view_audit_logs = _capability_predicate("can_view_audit_logs")
    can_view_dashboard = _capability_predicate("can_view_dashboard")
    can_view_statistics = _capability_predicate("can_view_statistics")
