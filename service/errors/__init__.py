from service.errors.models import (
    BackendError,
    ErrorReport,
    ErrorSeverity,
    MethodNotAllowedError,
    NotFoundError,
    RouteNotFoundError,
    ServiceError,
    ValidationError,
)
from service.errors.handler import ErrorHandler

__all__ = [
    "ServiceError", "ValidationError", "NotFoundError", "MethodNotAllowedError",
    "RouteNotFoundError", "BackendError",
    "ErrorReport", "ErrorSeverity", "ErrorHandler",
]
