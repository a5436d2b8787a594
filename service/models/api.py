"""
Request and response envelopes.

The router only ever sees an ApiRequest and only ever returns an ApiResponse.
Entry points (Lambda, dev server) translate to and from their own shapes.
"""

import base64
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


def _json_default(value: Any):
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def dumps(data: Any) -> str:
    return json.dumps(data, default=_json_default)


@dataclass
class ApiRequest:
    """Normalized inbound request."""

    method: str
    path: str
    path_parameters: dict = field(default_factory=dict)
    query_parameters: dict = field(default_factory=dict)
    headers: dict = field(default_factory=dict)
    body: Optional[str] = None
    request_id: str = field(default_factory=lambda: f"local-{uuid.uuid4()}")

    def __post_init__(self):
        self.method = (self.method or "GET").upper()
        self.path = self.path or "/"
        self.path_parameters = dict(self.path_parameters or {})
        self.query_parameters = dict(self.query_parameters or {})
        self.headers = dict(self.headers or {})

    @classmethod
    def from_lambda_event(cls, event: dict, context: Any = None) -> "ApiRequest":
        """Build a request from an API Gateway proxy event."""
        body = event.get("body")
        if body is not None and event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")

        request_id = getattr(context, "aws_request_id", None) or (
            (event.get("requestContext") or {}).get("requestId")
        )

        kwargs = {}
        if request_id:
            kwargs["request_id"] = request_id

        return cls(
            method=event.get("httpMethod") or "GET",
            path=event.get("path") or "/",
            path_parameters=event.get("pathParameters") or {},
            query_parameters=event.get("queryStringParameters") or {},
            headers=event.get("headers") or {},
            body=body,
            **kwargs,
        )

    def header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default


@dataclass
class ApiResponse:
    """HTTP-shaped response. `body` is always text."""

    status_code: int
    headers: dict = field(default_factory=dict)
    body: str = ""
    is_base64_encoded: bool = False

    def json(self) -> Any:
        """Parse the body. Used by tests and the dev server."""
        return json.loads(self.body) if self.body else None

    def to_lambda(self) -> dict:
        return {
            "statusCode": self.status_code,
            "headers": self.headers,
            "body": self.body,
            "isBase64Encoded": self.is_base64_encoded,
        }


def json_response(data: Any, status: int = 200) -> ApiResponse:
    return ApiResponse(
        status_code=status,
        headers={"Content-Type": "application/json", **CORS_HEADERS},
        body=dumps(data),
    )


def raw_response(body: bytes, content_type: str, status: int = 200) -> ApiResponse:
    """Pass a blob through untouched; binary payloads go out base64-encoded."""
    headers = {"Content-Type": content_type or "application/octet-stream", **CORS_HEADERS}
    try:
        return ApiResponse(status_code=status, headers=headers, body=body.decode("utf-8"))
    except UnicodeDecodeError:
        return ApiResponse(
            status_code=status,
            headers=headers,
            body=base64.b64encode(body).decode("ascii"),
            is_base64_encoded=True,
        )
