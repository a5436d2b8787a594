"""
Error models.

Every error the router can answer with is a ServiceError. The status code
and the response body travel with the exception, so handlers only raise.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorSeverity(str, Enum):
    """How serious a backend error is and who can fix it."""

    INFO = "info"          # Transient, retry likely works (throttling, timeouts)
    CONFIG = "config"      # Configuration issue, operator action needed
    CRITICAL = "critical"  # Infrastructure issue, deployment action needed


@dataclass
class ErrorReport:
    """A classified backend error. Logged, never shown verbatim to the caller."""

    severity: ErrorSeverity
    error_code: str = ""          # Machine-readable code (e.g. DYNAMODB_TABLE_MISSING)
    action: str = ""              # What to do about it
    original_error: str = ""      # Raw error text


class ServiceError(Exception):
    """Base for errors that map directly onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None, status_code: Optional[int] = None):
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_body(self) -> dict:
        return {"error": self.message, **self.details}


class ValidationError(ServiceError):
    """Missing or malformed request body."""

    status_code = 400


class NotFoundError(ServiceError):
    """A specific record or blob does not exist."""

    status_code = 404


class MethodNotAllowedError(ServiceError):
    """Recognized path, unsupported verb."""

    status_code = 405

    def __init__(self, method: str, path: str):
        super().__init__("Method not allowed", {"method": method, "path": path})


class RouteNotFoundError(ServiceError):
    """Unrecognized path."""

    status_code = 404

    def __init__(self, path: str, method: str):
        super().__init__("Route not found", {"path": path, "method": method})


class BackendError(ServiceError):
    """A store call raised. `message` is the operation that failed."""

    status_code = 500

    def __init__(self, message: str, cause: Exception):
        self.cause = cause
        super().__init__(message, {"message": str(cause)})
