# Overview: Error taxonomy shared by the permit authority and the REST client.

"""
Domain errors surfaced by the permit authority.

Each error carries the HTTP status the authority answers with, so routes can
translate it into a JSON response and the client can map a response back
into the same class:

    Unauthenticated    401  no/invalid session -> force re-login
    Forbidden          403  principal lacks the capability for the action
    NotFound           404  permit, role or user does not exist
    InvalidTransition  409  state precondition not met
    ValidationFailed   400  missing/invalid input (e.g. rejection comment)
"""

from __future__ import annotations


class PermitflowError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str = "", *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload.update(self.details)
        return payload


class Unauthenticated(PermitflowError):
    status_code = 401


class Forbidden(PermitflowError):
    status_code = 403


class NotFound(PermitflowError):
    status_code = 404


class InvalidTransition(PermitflowError):
    status_code = 409


class ValidationFailed(PermitflowError):
    status_code = 400


ERRORS_BY_STATUS = {
    Unauthenticated.status_code: Unauthenticated,
    Forbidden.status_code: Forbidden,
    NotFound.status_code: NotFound,
    InvalidTransition.status_code: InvalidTransition,
    ValidationFailed.status_code: ValidationFailed,
}
