"""
AWS Lambda entrypoint.

Same router as the dev server, wired to whatever backend the environment
selects: real DynamoDB/S3/CloudWatch when running on Lambda.

Backends are resolved once per process, on the first invocation, so
simulator state and AWS clients survive across warm invocations.

Handler setting:
    adapters.aws.lambda_handler.handler
"""

import asyncio
import logging
import os
from typing import Any, Optional

from adapters.factory import resolve_backends
from adapters.local.log_observer import LogObserver
from service.config import Settings, load_settings
from service.interfaces.observer import Observer
from service.models.api import ApiRequest, ApiResponse, json_response
from service.router.router import UNMATCHED_ROUTE, Router

logger = logging.getLogger("lambda_service.aws")

# --- Process state (initialized on first invocation) ---
_router: Optional[Router] = None

# Receives metrics for requests that fail before a router exists
fallback_observer: Observer = LogObserver()


def configure_logging(settings: Settings) -> None:
    # The Lambda runtime installs its own root handler; basicConfig is a no-op there.
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    logging.getLogger().setLevel(settings.log_level)


def build_router(env: Optional[dict] = None) -> Router:
    """Resolve settings and backends from one environment snapshot."""
    env = dict(os.environ) if env is None else env
    settings = load_settings(env)
    configure_logging(settings)
    backends = resolve_backends(settings, env=env)
    return Router(
        backends.kv,
        backends.blobs,
        backends.observer,
        settings,
        environment=backends.environment,
    )


def get_router() -> Router:
    """The process-wide router. A failed build is retried on the next call."""
    global _router
    if _router is None:
        _router = build_router()
    return _router


def _failed(response: ApiResponse, method: str, request_id: str) -> dict:
    """Emit request metrics for a failure outside the router, then answer."""
    fallback_observer.record_metric("RequestCount", 1, "Count", {
        "Method": method,
        "Path": UNMATCHED_ROUTE,
        "Environment": "aws" if os.getenv("AWS_EXECUTION_ENV") else "local",
    })
    fallback_observer.record_metric("FailedRequests", 1)
    fallback_observer.log_event(
        "error", "Request failed",
        requestId=request_id,
        statusCode=response.status_code,
    )
    return response.to_lambda()


def handler(event: dict, context: Any = None, router: Optional[Router] = None) -> dict:
    """
    API Gateway proxy handler.

    Uses the process-wide router unless one is passed in. Never raises:
    any failure becomes an error envelope.
    """
    try:
        request = ApiRequest.from_lambda_event(event or {}, context)
    except Exception as e:
        logger.exception("Malformed event")
        request_id = getattr(context, "aws_request_id", None) or ""
        return _failed(
            json_response({"error": "Bad request", "message": str(e)}, 400),
            "UNKNOWN", request_id,
        )

    try:
        router = router or get_router()
    except Exception as e:
        logger.exception("Router initialization failed")
        return _failed(
            json_response({
                "error": "Internal server error",
                "message": str(e),
                "requestId": request.request_id,
            }, 500),
            request.method, request.request_id,
        )

    response = asyncio.run(router.handle(request))
    return response.to_lambda()
