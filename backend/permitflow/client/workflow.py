# Overview: Client-side workflow for one permit: offer actions, validate locally, submit.

from __future__ import annotations

import logging
from typing import Optional

from ..errors import InvalidTransition, ValidationFailed
from ..lifecycle import PermitAction, PermitSnapshot, available_actions, validate_transition
from permitflow.time_utils import parse_iso_seconds
from .api import PermitClient


logger = logging.getLogger(__name__)


class ActionInProgress(InvalidTransition):
    """Another action on this permit is still waiting for the authority."""


class PermitWorkflow:
    """
    Holds the client's snapshot of one permit.

    The snapshot only ever changes by being replaced with the permit the
    authority returns; a failed action leaves it untouched.
    """

    def __init__(self, client: PermitClient, permit: dict):
        self.client = client
        self.permit = permit
        self._in_flight: Optional[str] = None

    @property
    def snapshot(self) -> PermitSnapshot:
        return PermitSnapshot.from_dict(self.permit)

    @property
    def in_flight(self) -> Optional[str]:
        return self._in_flight

    def available_actions(self) -> list:
        if self._in_flight:
            return []
        return available_actions(self.client.session.authorization, self.snapshot)

    def refresh(self) -> dict:
        self.permit = self.client.get_permit(self.permit["id"])
        return self.permit

    def submit(
        self,
        action: str,
        *,
        comment: Optional[str] = None,
        extended_until=None,
        signature: Optional[str] = None,
        closure_checklist=None,
    ) -> dict:
        """
        Validate an action locally, then propose it to the authority.

        Raises (before any request is sent):
            ActionInProgress, InvalidTransition, Forbidden, ValidationFailed
        Raises (from the authority, snapshot unchanged):
            any PermitflowError mapped from the response, or RequestTimeout
        """
        if self._in_flight:
            raise ActionInProgress(f"'{self._in_flight}' is already being submitted")

        if extended_until is not None:
            try:
                extended_until = parse_iso_seconds(extended_until)
            except (TypeError, ValueError):
                raise ValidationFailed("extended_until must be an ISO-8601 datetime")

        validate_transition(
            self.client.session.authorization,
            self.snapshot,
            action,
            comment=comment,
            extended_until=extended_until,
        )

        payload = {
            "comment": comment,
            "signature": signature,
            "closure_checklist": closure_checklist,
            "extended_until": extended_until,
        }
        if action in (PermitAction.REVOKE, PermitAction.EXTEND):
            payload["reason"] = payload.pop("comment")
        elif action == PermitAction.ADD_REMARKS:
            payload["remarks"] = payload.pop("comment")

        self._in_flight = action
        try:
            updated = self.client.transition(self.permit["id"], action, payload)
        finally:
            self._in_flight = None

        logger.info("Permit %s: %s -> %s", self.permit.get("permit_number"), action, updated.get("status"))
        self.permit = updated
        return updated
