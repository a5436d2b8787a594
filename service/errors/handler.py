"""
ErrorHandler: turns exceptions into responses and logs them.

Usage:
    from service.errors.handler import ErrorHandler

    error_handler = ErrorHandler()

    try:
        response = await dispatch(request)
    except Exception as e:
        response = error_handler.to_response(e, request.request_id)
"""

import logging
from dataclasses import replace

from service.errors.catalog import BACKEND_ERROR_PATTERNS, GENERIC_BACKEND_ERROR
from service.errors.models import BackendError, ErrorReport, ErrorSeverity, ServiceError
from service.models.api import ApiResponse, json_response

logger = logging.getLogger("lambda_service.errors")


class ErrorHandler:
    """Classifies backend failures and builds error responses."""

    def classify(self, error: Exception, context: str = "") -> ErrorReport:
        """Match an exception against the backend error catalog.

        Args:
            error: The caught exception (BackendError is unwrapped to its cause).
            context: Optional context string (e.g. "GET /users").

        Returns:
            An ErrorReport with a code, severity and operator action.
        """
        cause = error.cause if isinstance(error, BackendError) else error
        error_str = f"{type(cause).__name__}: {cause}"

        for pattern, template in BACKEND_ERROR_PATTERNS:
            if pattern.search(error_str):
                report = replace(template, original_error=error_str)
                self._log(report, context)
                return report

        report = replace(GENERIC_BACKEND_ERROR, original_error=error_str)
        self._log(report, context, matched=False)
        return report

    def to_response(self, error: Exception, request_id: str, context: str = "") -> ApiResponse:
        """Build the response for any exception that reached the router boundary."""
        if isinstance(error, BackendError):
            self.classify(error, context)
            return json_response(error.to_body(), error.status_code)

        if isinstance(error, ServiceError):
            return json_response(error.to_body(), error.status_code)

        logger.error(f"[{context}] Unhandled {type(error).__name__}: {error}")
        return json_response(
            {
                "error": "Internal server error",
                "message": str(error) or type(error).__name__,
                "requestId": request_id,
            },
            500,
        )

    def _log(self, report: ErrorReport, context: str, matched: bool = True) -> None:
        prefix = f"[{context}] " if context else ""
        tag = report.error_code if matched else "UNMATCHED"

        if report.severity == ErrorSeverity.CRITICAL:
            logger.error(f"{prefix}{tag}: {report.original_error} ({report.action})")
        elif report.severity == ErrorSeverity.CONFIG:
            logger.warning(f"{prefix}{tag}: {report.original_error} ({report.action})")
        else:
            logger.info(f"{prefix}{tag}: {report.original_error}")
