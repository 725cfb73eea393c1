# Overview: Client-side session holder with an explicit not-loaded state.

"""
Client Session

Holds the bearer token and the Principal loaded from GET /api/auth/me.

STATES:
    NOT_LOADED     -> nothing fetched yet (render a loading state, not a login form)
    ANONYMOUS      -> fetched, no valid session
    AUTHENTICATED  -> principal available

The session is passed explicitly to PermitClient and PermitWorkflow; there is
no module-level current user.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from ..permissions import AuthorizationModel, Principal


class SessionState(str, Enum):
    NOT_LOADED = "NOT_LOADED"
    ANONYMOUS = "ANONYMOUS"
    AUTHENTICATED = "AUTHENTICATED"


class ClientSession:

    def __init__(self, token: Optional[str] = None):
        self.token = token
        self.principal: Optional[Principal] = None
        self.state = SessionState.NOT_LOADED

    @property
    def is_loaded(self) -> bool:
        return self.state is not SessionState.NOT_LOADED

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def authorization(self) -> AuthorizationModel:
        """Capability queries over the loaded principal (all False until loaded)."""
        return AuthorizationModel(self.principal if self.is_authenticated else None)

    def load(self, payload: Optional[dict]) -> None:
        """Install the `user` object from /auth/me (None means anonymous)."""
        if not payload:
            self.principal = None
            self.state = SessionState.ANONYMOUS
            return
        self.principal = Principal.from_dict(payload)
        self.state = SessionState.AUTHENTICATED

    def clear(self) -> None:
        """Tear down after logout or a 401."""
        self.token = None
        self.principal = None
        self.state = SessionState.ANONYMOUS

    def auth_headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}
