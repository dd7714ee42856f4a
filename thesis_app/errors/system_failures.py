"""
System failure error classifications for collaborator failures.

These exceptions represent failures of the REST collaborators the engine
talks to: the price lookup service and the thesis store.
"""

from typing import Any, Dict, Optional

from .recovery import RecoverableError

_AUTH_EXPIRED_MARKERS = ("invalid or expired token", "access token required", "jwt")


class SystemFailureError(Exception):
    """Base class for collaborator and system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class ApiError(SystemFailureError):
    """REST call failed with a non-2xx status, a transport error or a timeout."""

    def __init__(self, message: str, status: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status
        self.details = details or {}

    @property
    def auth_expired(self) -> bool:
        """True when the server rejected the bearer token itself."""
        if self.status not in (401, 403):
            return False
        text = f"{self.details.get('error', '')} {self.details.get('message', '')}".lower()
        return any(marker in text for marker in _AUTH_EXPIRED_MARKERS)


class PersistenceError(SystemFailureError, RecoverableError):
    """Remote status write failed; the item stays eligible for the next pass."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target
        self.recoverable = True
