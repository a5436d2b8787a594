"""
Model and Lambda entrypoint tests.

- User payload validation and item shape
- API Gateway event → ApiRequest translation
- handler() end-to-end, injected router and the process-wide one
"""

import base64
import json
from types import SimpleNamespace

import pytest

from adapters.aws import lambda_handler
from adapters.aws.lambda_handler import build_router, handler
from conftest import CollectingObserver
from service.errors import ValidationError
from service.models.api import ApiRequest, raw_response
from service.models.user import User, new_user_id, parse_update, utc_now_iso


# --- User ---


def test_user_defaults():
    user = User.from_payload({}, "u1", "2024-01-01T00:00:00.000000+00:00")
    item = user.to_item()
    assert item["name"] == "Unknown"
    assert item["email"] == ""
    assert item["createdAt"] == item["updatedAt"]


def test_user_rejects_non_object():
    with pytest.raises(ValidationError):
        User.from_payload(["not", "a", "dict"], "u1", "now")


def test_user_rejects_non_string_name():
    with pytest.raises(ValidationError):
        User.from_payload({"name": 42}, "u1", "now")


def test_user_ignores_client_timestamps_and_id():
    user = User.from_payload({"id": "spoofed", "createdAt": "1970"}, "u1", "now")
    assert user.id == "u1"
    assert user.created_at == "now"


def test_parse_update_keeps_only_name_and_email():
    assert parse_update({"name": "A", "email": "", "role": "admin"}) == {"name": "A"}


def test_new_user_ids_are_unique():
    assert len({new_user_id() for _ in range(100)}) == 100


def test_utc_now_iso_is_strictly_after():
    future = "2999-01-01T00:00:00.000000+00:00"
    assert utc_now_iso(after=future) > future


# --- ApiRequest / ApiResponse ---


def test_request_from_lambda_event():
    event = {
        "httpMethod": "post",
        "path": "/users",
        "headers": {"user-agent": "curl/8"},
        "queryStringParameters": None,
        "pathParameters": None,
        "body": base64.b64encode(b'{"name": "A"}').decode(),
        "isBase64Encoded": True,
        "requestContext": {"requestId": "gw-1"},
    }

    request = ApiRequest.from_lambda_event(event)

    assert request.method == "POST"
    assert request.body == '{"name": "A"}'
    assert request.query_parameters == {}
    assert request.request_id == "gw-1"
    assert request.header("User-Agent") == "curl/8"


def test_request_id_prefers_lambda_context():
    context = SimpleNamespace(aws_request_id="ctx-1")
    request = ApiRequest.from_lambda_event({"requestContext": {"requestId": "gw-1"}}, context)
    assert request.request_id == "ctx-1"


def test_raw_response_text():
    response = raw_response("héllo".encode("utf-8"), "text/plain")
    assert response.body == "héllo"
    assert not response.is_base64_encoded


# --- Lambda handler ---


def test_handler_health(router):
    result = handler({"httpMethod": "GET", "path": "/health"}, router=router)

    assert result["statusCode"] == 200
    assert result["headers"]["Access-Control-Allow-Origin"] == "*"
    assert json.loads(result["body"])["status"] == "healthy"
    assert result["isBase64Encoded"] is False


def test_handler_create_and_fetch(router):
    created = handler({"httpMethod": "POST", "path": "/users", "body": '{"name": "A"}'}, router=router)
    user_id = json.loads(created["body"])["user"]["id"]

    fetched = handler({
        "httpMethod": "GET",
        "path": f"/users/{user_id}",
        "pathParameters": {"id": user_id},
    }, router=router)

    assert created["statusCode"] == 201
    assert fetched["statusCode"] == 200
    assert json.loads(fetched["body"])["user"]["name"] == "A"


def test_handler_unknown_route(router):
    result = handler({"httpMethod": "GET", "path": "/unknown"}, router=router)
    assert result["statusCode"] == 404


@pytest.fixture
def fresh_process(monkeypatch):
    """No cached router yet; fallback metrics collected; simulator backends."""
    fallback = CollectingObserver()
    monkeypatch.setattr(lambda_handler, "_router", None)
    monkeypatch.setattr(lambda_handler, "fallback_observer", fallback)
    for name in ("AWS_EXECUTION_ENV", "USE_LOCALSTACK", "STAGE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("USE_MOCK_AWS", "true")
    return fallback


def test_handler_keeps_state_between_invocations(fresh_process):
    created = handler({"httpMethod": "POST", "path": "/users", "body": '{"name": "A"}'})
    user_id = json.loads(created["body"])["user"]["id"]

    fetched = handler({"httpMethod": "GET", "path": f"/users/{user_id}"})

    assert created["statusCode"] == 201
    assert fetched["statusCode"] == 200
    assert json.loads(fetched["body"])["user"]["name"] == "A"


def test_handler_builds_router_once(fresh_process):
    handler({"httpMethod": "GET", "path": "/health"})
    first = lambda_handler._router
    handler({"httpMethod": "GET", "path": "/health"})
    assert first is not None
    assert lambda_handler._router is first


def test_handler_reports_init_failure(fresh_process, monkeypatch):
    monkeypatch.setenv("STAGE", "qa")
    result = handler({"httpMethod": "GET", "path": "/health"}, SimpleNamespace(aws_request_id="ctx-2"))

    body = json.loads(result["body"])
    assert result["statusCode"] == 500
    assert body["error"] == "Internal server error"
    assert body["requestId"] == "ctx-2"
    assert len(fresh_process.metrics("RequestCount")) == 1
    assert len(fresh_process.metrics("FailedRequests")) == 1
    assert lambda_handler._router is None


def test_handler_rejects_malformed_event(fresh_process):
    result = handler(["not", "an", "event"], SimpleNamespace(aws_request_id="ctx-3"))

    assert result["statusCode"] == 400
    assert json.loads(result["body"])["error"] == "Bad request"
    assert fresh_process.metrics("RequestCount")[0]["dimensions"]["Path"] == "unmatched"
    assert len(fresh_process.metrics("FailedRequests")) == 1


def test_build_router_in_test_mode():
    router = build_router({"SERVICE_ENV": "test", "TABLE_NAME": "t"})
    assert router.environment == "local-mock"
    assert router.settings.table_name == "t"
