"""
Router: the request handler.

Receives every normalized request, matches it against the route table,
calls the key-value and blob stores, and shapes the response envelope.
Cloud-agnostic. Stores, observer and settings are injected. The router
keeps no state between requests.
"""

import json
import logging
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from service.config import Settings
from service.errors.handler import ErrorHandler
from service.errors.models import (
    BackendError,
    MethodNotAllowedError,
    NotFoundError,
    RouteNotFoundError,
    ValidationError,
)
from service.interfaces.blob_store import BlobNotFound, BlobStore
from service.interfaces.kv_store import KeyValueStore
from service.interfaces.observer import Observer
from service.models.api import ApiRequest, ApiResponse, json_response, raw_response
from service.models.user import User, new_user_id, parse_update, utc_now_iso

logger = logging.getLogger("lambda_service.router")

DEFAULT_PROFILE = {"message": "No profile found"}
UNMATCHED_ROUTE = "unmatched"


# --- Route table ---
# Path templates, {name} captures one segment. Value maps verb → handler name.

ROUTES: list[tuple[str, dict[str, str]]] = [
    ("/health", {"GET": "_health"}),
    ("/users", {"GET": "_list_users", "POST": "_create_user"}),
    ("/users/{id}", {"GET": "_get_user", "PUT": "_update_user", "DELETE": "_delete_user"}),
    ("/files", {"GET": "_list_files", "POST": "_upload_file"}),
    ("/files/{fileName}", {"GET": "_get_file"}),
]

# API Gateway may name the user parameter either way depending on the stack.
PARAM_ALIASES = {"id": ("id", "userId")}


def _compile(template: str) -> re.Pattern:
    pattern = re.sub(r"\{(\w+)\}", r"(?P<\1>[^/]+)", template)
    return re.compile(f"^{pattern}$")


COMPILED_ROUTES = [(_compile(template), template, methods) for template, methods in ROUTES]


@dataclass
class RouteMatch:
    """Result of matching a path against the route table."""
    template: str
    handler: str
    params: dict = field(default_factory=dict)


def match_route(method: str, path: str, path_parameters: Optional[dict] = None) -> RouteMatch:
    """
    Resolve a request to a handler name.

    Raises:
        RouteNotFoundError: No template matches the path
        MethodNotAllowedError: Template matches, verb doesn't
    """
    normalized = path.rstrip("/") or "/"
    for pattern, template, methods in COMPILED_ROUTES:
        m = pattern.match(normalized)
        if not m:
            continue
        if method not in methods:
            raise MethodNotAllowedError(method, path)

        params = m.groupdict()
        # Explicit path parameters from the gateway win over parsed ones
        for name in params:
            for alias in PARAM_ALIASES.get(name, (name,)):
                if (path_parameters or {}).get(alias):
                    params[name] = path_parameters[alias]
                    break
        return RouteMatch(template=template, handler=methods[method], params=params)

    raise RouteNotFoundError(path, method)


def route_template(path: str) -> str:
    """The route template a path falls under, or "unmatched". Used as a metric dimension."""
    normalized = path.rstrip("/") or "/"
    for pattern, template, _ in COMPILED_ROUTES:
        if pattern.match(normalized):
            return template
    return UNMATCHED_ROUTE


class Router:
    """
    Central request handler. All dependencies injected.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        blobs: BlobStore,
        observer: Observer,
        settings: Settings,
        environment: str = "local-mock",
    ):
        self.kv = kv
        self.blobs = blobs
        self.observer = observer
        self.settings = settings
        self.environment = environment
        self.errors = ErrorHandler()

    async def handle(self, request: ApiRequest) -> ApiResponse:
        """
        Main entry point. Handles a single request end-to-end and never raises.
        """
        started = time.monotonic()
        context = f"{request.method} {request.path}"

        self.observer.log_event(
            "info", "Request started",
            requestId=request.request_id,
            method=request.method,
            path=request.path,
            userAgent=request.header("User-Agent"),
            environment=self.environment,
        )
        self.observer.record_metric("RequestCount", 1, "Count", {
            "Method": request.method,
            "Path": route_template(request.path),
            "Environment": "aws" if self.environment == "aws" else "local",
        })

        try:
            route = match_route(request.method, request.path, request.path_parameters)
            response = await getattr(self, route.handler)(request, **route.params)
        except Exception as e:
            response = self.errors.to_response(e, request.request_id, context)

        duration_ms = round((time.monotonic() - started) * 1000, 2)
        self.observer.record_metric("RequestDuration", duration_ms, "Milliseconds")

        if response.status_code >= 500:
            self.observer.record_metric("FailedRequests", 1)
            self.observer.log_event(
                "error", "Request failed",
                requestId=request.request_id,
                statusCode=response.status_code,
                duration=f"{duration_ms}ms",
            )
        else:
            self.observer.record_metric("SuccessfulRequests", 1)
            self.observer.log_event(
                "info", "Request completed",
                requestId=request.request_id,
                statusCode=response.status_code,
                duration=f"{duration_ms}ms",
            )

        return response

    # --- Health ---

    async def _health(self, request: ApiRequest) -> ApiResponse:
        db_health = "healthy"
        try:
            await self.kv.scan(self.settings.table_name, limit=1)
        except Exception as e:
            db_health = "unhealthy"
            logger.warning(f"Database health check failed: {e}")

        storage_health = "healthy"
        try:
            await self.blobs.list(self.settings.bucket_name, max_keys=1)
        except Exception as e:
            storage_health = "unhealthy"
            logger.warning(f"Storage health check failed: {e}")

        healthy = db_health == "healthy" and storage_health == "healthy"
        self.observer.record_metric("HealthCheckRequests", 1)
        self.observer.record_metric("ServiceHealth", 1 if healthy else 0)

        return json_response({
            "status": "healthy" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": self.settings.version,
            "environment": self.environment,
            "region": self.settings.region,
            "checks": {
                "database": {"status": db_health, "service": self.settings.table_name},
                "storage": {"status": storage_health, "service": self.settings.bucket_name},
            },
        }, 200 if healthy else 503)

    # --- Users ---

    async def _list_users(self, request: ApiRequest) -> ApiResponse:
        with self._store_call("Database", "Scan", "Failed to fetch users"):
            result = await self.kv.scan(self.settings.table_name, limit=self.settings.scan_limit)

        return json_response({
            "users": [User.from_item(item).to_item() for item in result.items],
            "count": result.count,
            "scannedCount": result.scanned_count,
        })

    async def _create_user(self, request: ApiRequest) -> ApiResponse:
        payload = self._parse_body(request)
        now = utc_now_iso()
        user = User.from_payload(payload, new_user_id(), now)

        with self._store_call("Database", "PutItem", "Failed to create user"):
            await self.kv.put(self.settings.table_name, user.to_item())
        self.observer.record_metric("UsersCreated", 1)

        body = {"message": "User created successfully", "user": user.to_item()}

        if self.settings.user_profiles:
            key = self._profile_key(user.id)
            profile = {
                "userId": user.id,
                "profileCreated": now,
                "preferences": {"theme": "light", "notifications": True},
            }
            with self._store_call("S3", "PutObject", "Failed to create user profile"):
                await self.blobs.put(
                    self.settings.bucket_name, key, json.dumps(profile), "application/json",
                )
            body["profileLocation"] = f"s3://{self.settings.bucket_name}/{key}"

        return json_response(body, 201)

    async def _get_user(self, request: ApiRequest, id: str) -> ApiResponse:
        with self._store_call("Database", "GetItem", "Failed to get user"):
            result = await self.kv.get(self.settings.table_name, {"id": id})

        if not result.item:
            raise NotFoundError("User not found", {"userId": id})

        body = {"user": User.from_item(result.item).to_item()}
        if self.settings.user_profiles:
            body["profile"] = await self._load_profile(id)
            body["lastAccessed"] = datetime.now(timezone.utc).isoformat()
        return json_response(body)

    async def _update_user(self, request: ApiRequest, id: str) -> ApiResponse:
        payload = self._parse_body(request)
        mutation = parse_update(payload)
        mutation["updatedAt"] = utc_now_iso()

        with self._store_call("Database", "UpdateItem", "Failed to update user"):
            await self.kv.update(self.settings.table_name, {"id": id}, mutation)
        self.observer.record_metric("UsersUpdated", 1)

        return json_response({"message": "User updated successfully", "userId": id})

    async def _delete_user(self, request: ApiRequest, id: str) -> ApiResponse:
        with self._store_call("Database", "DeleteItem", "Failed to delete user"):
            await self.kv.delete(self.settings.table_name, {"id": id})
        self.observer.record_metric("UsersDeleted", 1)

        return json_response({"message": "User deleted successfully", "userId": id})

    # --- Files ---

    async def _list_files(self, request: ApiRequest) -> ApiResponse:
        prefix = request.query_parameters.get("prefix") or ""

        with self._store_call("S3", "ListObjects", "Failed to list files"):
            result = await self.blobs.list(
                self.settings.bucket_name, prefix=prefix, max_keys=self.settings.list_max_keys,
            )

        return json_response({
            "files": [summary.to_dict() for summary in result.contents],
            "bucket": self.settings.bucket_name,
            "prefix": prefix,
            "count": result.key_count,
        })

    async def _upload_file(self, request: ApiRequest) -> ApiResponse:
        payload = self._parse_body(request)
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        content = payload.get("content")
        if content is None or content == "":
            raise ValidationError("File content is required")
        if not isinstance(content, str):
            raise ValidationError("Field 'content' must be a string")

        file_name = payload.get("fileName") or payload.get("name") or f"file-{int(time.time() * 1000)}.txt"
        if not isinstance(file_name, str) or "/" in file_name:
            raise ValidationError("Field 'fileName' must be a plain file name")

        key = f"{self.settings.upload_prefix}/{file_name}"
        with self._store_call("S3", "PutObject", "Failed to upload file"):
            await self.blobs.put(
                self.settings.bucket_name, key, content, payload.get("contentType") or "text/plain",
            )
        self.observer.record_metric("FilesUploaded", 1)

        return json_response({
            "message": "File uploaded successfully",
            "fileName": file_name,
            "location": f"s3://{self.settings.bucket_name}/{key}",
        }, 201)

    async def _get_file(self, request: ApiRequest, fileName: str) -> ApiResponse:
        folder = (request.query_parameters.get("folder") or self.settings.default_folder).strip("/")
        key = f"{folder}/{fileName}" if folder else fileName

        try:
            with self._store_call("S3", "GetObject", "Failed to get file"):
                blob = await self.blobs.get(self.settings.bucket_name, key)
        except BlobNotFound as e:
            logger.info(f"File not found: {e}")
            raise NotFoundError("File not found", {"fileName": fileName})

        return raw_response(blob.body, blob.content_type)

    # --- Helpers ---

    @contextmanager
    def _store_call(self, service: str, operation: str, failure: str):
        """Record the operation metric; wrap store exceptions as BackendError."""
        try:
            yield
        except BlobNotFound:
            self.observer.record_metric(f"{service}Operations", 1, dimensions={"Operation": operation})
            raise
        except Exception as e:
            self.observer.record_metric(f"{service}Errors", 1, dimensions={"Operation": operation})
            raise BackendError(failure, e) from e
        self.observer.record_metric(f"{service}Operations", 1, dimensions={"Operation": operation})

    def _parse_body(self, request: ApiRequest):
        if request.body is None or not request.body.strip():
            raise ValidationError("Request body is required")
        try:
            return json.loads(request.body)
        except json.JSONDecodeError:
            raise ValidationError("Request body must be valid JSON")

    def _profile_key(self, user_id: str) -> str:
        return f"profiles/{user_id}.json"

    async def _load_profile(self, user_id: str) -> dict:
        """Best-effort profile read. Any failure falls back to the placeholder."""
        try:
            blob = await self.blobs.get(self.settings.bucket_name, self._profile_key(user_id))
            return json.loads(blob.text())
        except BlobNotFound:
            logger.info(f"Profile not found for {user_id}, using default")
        except Exception as e:
            logger.warning(f"Profile read failed for {user_id}: {e}")
        return dict(DEFAULT_PROFILE)
