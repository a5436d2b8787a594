"""
Local Development Server

A simple HTTP server that feeds every request through the same Router the
Lambda function uses. Backends default to the in-process simulators
(seeded with sample users and files); set USE_LOCALSTACK=true to talk to
a LocalStack endpoint instead.

Usage:
    python -m adapters.local.dev_server

    curl http://localhost:3000/health
    curl -X POST http://localhost:3000/users -d '{"name":"John","email":"john@test.com"}'
"""

import asyncio
import base64
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, HTTPServer
from urllib.parse import parse_qsl, urlparse

from adapters.factory import BackendMode, BackendSignals, resolve_backends
from adapters.local.memory_blob_store import seed_sample_files
from adapters.local.memory_kv_store import sample_users
from service.config import load_settings
from service.errors.models import ValidationError
from service.models.api import ApiRequest, ApiResponse, json_response
from service.router.router import Router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("lambda_service.dev")

# --- Global state (initialized in main) ---
router: Router

# Stats for the session
stats = {"requests": 0, "errors": 0}


def _run_async(coro):
    """Run async code from sync context."""
    return asyncio.run(coro)


def build_request(method: str, raw_path: str, headers: dict, raw_body: bytes) -> ApiRequest:
    """
    Build an ApiRequest from raw HTTP parts.

    Raises:
        ValidationError: The body is not UTF-8 text
    """
    parsed = urlparse(raw_path)
    try:
        body = raw_body.decode("utf-8") if raw_body else None
    except UnicodeDecodeError:
        raise ValidationError("Request body must be UTF-8 encoded")

    return ApiRequest(
        method=method,
        path=parsed.path,
        query_parameters=dict(parse_qsl(parsed.query)),
        headers=headers,
        body=body,
    )


class DevHandler(BaseHTTPRequestHandler):
    """HTTP request handler for local development."""

    def do_GET(self):
        self._dispatch()

    def do_POST(self):
        self._dispatch()

    def do_PUT(self):
        self._dispatch()

    def do_DELETE(self):
        self._dispatch()

    def do_PATCH(self):
        self._dispatch()

    def _dispatch(self):
        """Convert the HTTP request to an ApiRequest and run it through the router."""
        length = int(self.headers.get("Content-Length") or 0)
        raw_body = self.rfile.read(length) if length else b""

        stats["requests"] += 1
        try:
            request = build_request(self.command, self.path, dict(self.headers.items()), raw_body)
        except ValidationError as e:
            logger.warning(f"{self.command} {self.path} rejected: {e}")
            self._write(json_response(e.to_body(), e.status_code))
            return

        response = _run_async(router.handle(request))
        if response.status_code >= 500:
            stats["errors"] += 1

        logger.info(f"{request.method} {request.path} → {response.status_code}")
        self._write(response)

    def _write(self, response: ApiResponse):
        payload = response.body.encode("utf-8")
        if response.is_base64_encoded:
            payload = base64.b64decode(response.body)

        self.send_response(response.status_code)
        for name, value in response.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def do_OPTIONS(self):
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, PUT, DELETE, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type, Authorization")
        self.end_headers()

    def log_message(self, format, *args):
        pass


def init():
    """Initialize all components."""
    global router

    env = dict(os.environ)
    settings = load_settings(env)
    logging.getLogger().setLevel(settings.log_level)

    # Simulators unless LocalStack was asked for
    signals = BackendSignals.from_env(env)
    if not signals.use_emulator:
        signals = BackendSignals(force_mock=True)

    backends = resolve_backends(settings, signals=signals)

    if backends.mode == BackendMode.SIMULATOR:
        for item in sample_users():
            _run_async(backends.kv.put(settings.table_name, item))
        _run_async(seed_sample_files(backends.blobs, settings.bucket_name))
        logger.info(f"Seeded {settings.table_name} and s3://{settings.bucket_name}")

    router = Router(
        backends.kv,
        backends.blobs,
        backends.observer,
        settings,
        environment=backends.environment,
    )
    logger.info(f"Backends: {backends.mode.value} (stage={settings.stage})")


def main():
    init()

    port = int(os.getenv("PORT", "3000"))
    server = HTTPServer(("0.0.0.0", port), DevHandler)

    logger.info("")
    logger.info("  ╔══════════════════════════════════════╗")
    logger.info("  ║  lambda-service dev server           ║")
    logger.info(f"  ║  http://localhost:{port}               ║")
    logger.info("  ║                                      ║")
    logger.info("  ║  GET  /health   /users   /files      ║")
    logger.info("  ╚══════════════════════════════════════╝")
    logger.info("")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info(f"Session stats: {json.dumps(stats)}")
        logger.info("Shutting down...")
        server.server_close()


if __name__ == "__main__":
    main()
