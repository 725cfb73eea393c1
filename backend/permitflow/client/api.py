# Overview: httpx client for the permit authority's REST API.

"""
Permit REST Client

Thin wrapper over the /api endpoints. Every non-2xx response is mapped onto
the shared error taxonomy (permitflow.errors) with the authority's message
passed through verbatim:

    401 -> Unauthenticated   (the session is cleared before raising)
    403 -> Forbidden
    404 -> NotFound
    409 -> InvalidTransition
    400 -> ValidationFailed

Requests are never retried. A request that exceeds the timeout raises
RequestTimeout.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Optional

import httpx

from ..errors import ERRORS_BY_STATUS, PermitflowError, Unauthenticated
from ..lifecycle import PermitAction
from permitflow.time_utils import to_utc_z
from .session import ClientSession


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = os.environ.get("PERMITFLOW_BASE_URL", "http://127.0.0.1:5000")
DEFAULT_TIMEOUT = float(os.environ.get("PERMITFLOW_TIMEOUT", "15"))


class RequestTimeout(PermitflowError):
    """The authority did not answer within the timeout. Not retried."""
    status_code = 504


class ServiceUnavailable(PermitflowError):
    status_code = 503


def _iso(value):
    if isinstance(value, datetime):
        return to_utc_z(value)
    return value


class PermitClient:
    """
    Client for one user session.

    Args:
        base_url: Authority root URL (default $PERMITFLOW_BASE_URL)
        session: ClientSession to read the token from and update on login/401
        timeout: Per-request timeout in seconds (default $PERMITFLOW_TIMEOUT)
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.session = session or ClientSession()
        self._http = httpx.Client(
            base_url=base_url or DEFAULT_BASE_URL,
            timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PermitClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(self, method: str, path: str, *, json: Any = None, params: Optional[dict] = None) -> dict:
        try:
            response = self._http.request(
                method,
                path,
                json=json,
                params=params,
                headers=self.session.auth_headers(),
            )
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise RequestTimeout(f"Request timed out: {method} {path}") from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ServiceUnavailable(f"Permit service unreachable: {e}") from e

        if response.is_success:
            if not response.content:
                return {}
            return response.json()

        return self._raise_for_response(method, path, response)

    def _raise_for_response(self, method: str, path: str, response: httpx.Response):
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        message = payload.pop("error", None) or response.reason_phrase or f"HTTP {response.status_code}"
        logger.info("%s %s -> %s: %s", method, path, response.status_code, message)

        if response.status_code == Unauthenticated.status_code:
            self.session.clear()

        error_cls = ERRORS_BY_STATUS.get(response.status_code)
        if error_cls is None:
            error = PermitflowError(message, details=payload)
            error.status_code = response.status_code
            raise error
        raise error_cls(message, details=payload)

    # =========================================================================
    # Session
    # =========================================================================

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.session.token = data["token"]
        self.session.load(data.get("user"))
        return data["user"]

    def logout(self) -> None:
        try:
            if self.session.token:
                self._request("POST", "/api/auth/logout")
        finally:
            self.session.clear()

    def load_session(self) -> Optional[dict]:
        """
        Fetch the current principal and install it in the session.

        Returns the /auth/me user payload, or None when there is no valid
        session (the session is then ANONYMOUS).
        """
        if not self.session.token:
            self.session.load(None)
            return None
        try:
            data = self._request("GET", "/api/auth/me")
        except Unauthenticated:
            return None
        self.session.load(data.get("user"))
        return data.get("user")

    # =========================================================================
    # Permits
    # =========================================================================

    def list_permits(self, **filters) -> dict:
        params = {k: v for k, v in filters.items() if v is not None}
        return self._request("GET", "/api/permits", params=params)

    def get_permit(self, permit_id: int) -> dict:
        return self._request("GET", f"/api/permits/{permit_id}")["permit"]

    def create_permit(self, data: dict) -> dict:
        return self._request("POST", "/api/permits", json=data)["permit"]

    def update_permit(self, permit_id: int, data: dict) -> dict:
        return self._request("PUT", f"/api/permits/{permit_id}", json=data)["permit"]

    def delete_permit(self, permit_id: int) -> None:
        self._request("DELETE", f"/api/permits/{permit_id}")

    def work_types(self) -> list:
        return self._request("GET", "/api/permits/work-types")["work_types"]

    def action_history(self, permit_id: int) -> list:
        return self._request("GET", f"/api/permits/{permit_id}/action-history")["history"]

    def transition(self, permit_id: int, action: str, payload: Optional[dict] = None) -> dict:
        """POST one workflow action; returns the authority's full updated permit."""
        body = {k: _iso(v) for k, v in (payload or {}).items() if v is not None}
        return self._request("POST", f"/api/permits/{permit_id}/{action}", json=body)["permit"]

    def approve(self, permit_id: int, *, comment: Optional[str] = None, signature: Optional[str] = None) -> dict:
        return self.transition(permit_id, PermitAction.APPROVE, {"comment": comment, "signature": signature})

    def reject(self, permit_id: int, *, comment: str) -> dict:
        return self.transition(permit_id, PermitAction.REJECT, {"comment": comment})

    def extend(self, permit_id: int, *, extended_until, reason: Optional[str] = None) -> dict:
        return self.transition(permit_id, PermitAction.EXTEND, {"extended_until": extended_until, "reason": reason})

    def revoke(self, permit_id: int, *, reason: str) -> dict:
        return self.transition(permit_id, PermitAction.REVOKE, {"reason": reason})

    def reapprove(self, permit_id: int, *, comment: Optional[str] = None, signature: Optional[str] = None) -> dict:
        return self.transition(permit_id, PermitAction.REAPPROVE, {"comment": comment, "signature": signature})

    def close_permit(self, permit_id: int, *, comment: Optional[str] = None, closure_checklist=None) -> dict:
        return self.transition(
            permit_id, PermitAction.CLOSE, {"comment": comment, "closure_checklist": closure_checklist}
        )

    def add_remarks(self, permit_id: int, *, remarks: str) -> dict:
        return self.transition(permit_id, PermitAction.ADD_REMARKS, {"remarks": remarks})

    # =========================================================================
    # Approvals
    # =========================================================================

    def pending_count(self) -> int:
        return self._request("GET", "/api/approvals/pending-count")["count"]

    def approval_stats(self) -> dict:
        return self._request("GET", "/api/approvals/stats")

    # =========================================================================
    # Roles
    # =========================================================================

    def list_roles(self) -> list:
        return self._request("GET", "/api/roles")["roles"]

    def get_role(self, role_id: int) -> dict:
        return self._request("GET", f"/api/roles/{role_id}")["role"]

    def permission_catalogue(self) -> dict:
        return self._request("GET", "/api/roles/permissions")

    def create_role(self, data: dict) -> dict:
        return self._request("POST", "/api/roles", json=data)["role"]

    def update_role(self, role_id: int, data: dict) -> dict:
        return self._request("PUT", f"/api/roles/{role_id}", json=data)["role"]

    def delete_role(self, role_id: int) -> None:
        self._request("DELETE", f"/api/roles/{role_id}")

    def assign_role(self, user_id: int, role_id: int) -> dict:
        return self._request("POST", "/api/roles/assign", json={"user_id": user_id, "role_id": role_id})["user"]
