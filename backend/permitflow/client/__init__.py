# Overview: REST client package. Re-exports the public APIs so callers import from `permitflow.client`.

from .api import PermitClient, RequestTimeout, ServiceUnavailable
from .session import ClientSession, SessionState
from .workflow import ActionInProgress, PermitWorkflow

__all__ = [
    "PermitClient",
    "RequestTimeout",
    "ServiceUnavailable",
    "ClientSession",
    "SessionState",
    "ActionInProgress",
    "PermitWorkflow",
]
