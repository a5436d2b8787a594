"""
Router tests.

Drive the full request path against the simulators:
- users CRUD, including the companion profile blob
- files listing, upload and download
- health, unknown routes, wrong verbs
- backend failures surfacing as 500 with an error metric
"""

import base64

import pytest

from adapters.local.memory_blob_store import InMemoryBlobStore
from adapters.local.memory_kv_store import InMemoryKeyValueStore
from service.router.router import Router, match_route
from service.errors.models import MethodNotAllowedError, RouteNotFoundError
from conftest import CollectingObserver, make_request


class BrokenKeyValueStore(InMemoryKeyValueStore):
    async def scan(self, table, limit=None):
        raise RuntimeError("ResourceNotFoundException: Requested resource not found: table")


class BrokenBlobStore(InMemoryBlobStore):
    async def list(self, bucket, prefix="", max_keys=1000):
        raise RuntimeError("Could not connect to the endpoint URL")

    async def get(self, bucket, key):
        raise RuntimeError("AccessDenied")


async def _create(router, name="Alice", email="alice@x.com", **extra) -> dict:
    response = await router.handle(make_request("POST", "/users", {"name": name, "email": email, **extra}))
    assert response.status_code == 201
    return response.json()["user"]


# --- Route matching ---


def test_match_route_parses_path_parameter():
    match = match_route("GET", "/users/abc")
    assert match.handler == "_get_user"
    assert match.params == {"id": "abc"}


def test_match_route_prefers_gateway_parameters():
    match = match_route("GET", "/users/abc", {"userId": "from-gateway"})
    assert match.params == {"id": "from-gateway"}


def test_match_route_ignores_trailing_slash():
    assert match_route("GET", "/users/").handler == "_list_users"


def test_match_route_errors():
    with pytest.raises(MethodNotAllowedError):
        match_route("PATCH", "/users")
    with pytest.raises(RouteNotFoundError):
        match_route("GET", "/nope")


# --- Health ---


async def test_health_when_backends_reachable(router):
    response = await router.handle(make_request("GET", "/health"))
    body = response.json()

    assert response.status_code == 200
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == {"status": "healthy", "service": "test-table"}
    assert body["checks"]["storage"] == {"status": "healthy", "service": "test-bucket"}
    assert body["environment"] == "local-mock"


async def test_health_degraded_when_probe_fails(blobs, observer, settings):
    router = Router(BrokenKeyValueStore(), blobs, observer, settings)
    response = await router.handle(make_request("GET", "/health"))
    body = response.json()

    assert response.status_code == 503
    assert body["status"] == "degraded"
    assert body["checks"]["database"]["status"] == "unhealthy"
    assert body["checks"]["storage"]["status"] == "healthy"
    assert observer.metrics("ServiceHealth")[0]["value"] == 0


# --- Users ---


async def test_create_then_list_users(router):
    """POST /users then GET /users shows the new user."""
    response = await router.handle(make_request("POST", "/users", {"name": "Alice", "email": "alice@x.com"}))
    assert response.status_code == 201
    created = response.json()
    assert created["message"] == "User created successfully"
    assert created["user"]["name"] == "Alice"

    listing = await router.handle(make_request("GET", "/users"))
    body = listing.json()
    assert listing.status_code == 200
    assert body["count"] == 1
    assert body["scannedCount"] == 1
    assert [u["id"] for u in body["users"]] == [created["user"]["id"]]


async def test_create_then_get_round_trip(router):
    user = await _create(router)

    response = await router.handle(make_request("GET", f"/users/{user['id']}"))
    body = response.json()

    assert response.status_code == 200
    assert body["user"]["id"] == user["id"]
    assert body["user"]["name"] == "Alice"
    assert body["user"]["email"] == "alice@x.com"
    assert body["profile"]["userId"] == user["id"]


async def test_create_keeps_extra_scalar_fields(router):
    user = await _create(router, team="platform", age=31)
    assert user["team"] == "platform"
    assert user["age"] == 31


async def test_create_rejects_nested_fields(router):
    response = await router.handle(make_request("POST", "/users", {"name": "A", "tags": ["x"]}))
    assert response.status_code == 400


async def test_create_requires_body(router):
    response = await router.handle(make_request("POST", "/users"))
    assert response.status_code == 400
    assert response.json() == {"error": "Request body is required"}


async def test_create_rejects_invalid_json(router):
    response = await router.handle(make_request("POST", "/users", "{not json"))
    assert response.status_code == 400


async def test_create_writes_profile_blob(router, blobs):
    response = await router.handle(make_request("POST", "/users", {"name": "Bob"}))
    body = response.json()
    user_id = body["user"]["id"]

    assert body["profileLocation"] == f"s3://test-bucket/profiles/{user_id}.json"
    blob = await blobs.get("test-bucket", f"profiles/{user_id}.json")
    assert blob.content_type == "application/json"


async def test_get_user_without_profile_uses_placeholder(router, kv):
    await kv.put("test-table", {"id": "legacy", "name": "Old", "email": "old@x.com"})

    response = await router.handle(make_request("GET", "/users/legacy"))

    assert response.status_code == 200
    assert response.json()["profile"] == {"message": "No profile found"}


async def test_get_user_survives_broken_profile_store(kv, observer, settings):
    router = Router(kv, BrokenBlobStore(), observer, settings)
    await kv.put("test-table", {"id": "u1", "name": "A"})

    response = await router.handle(make_request("GET", "/users/u1"))

    assert response.status_code == 200
    assert response.json()["profile"] == {"message": "No profile found"}


async def test_get_missing_user_is_404(router):
    response = await router.handle(make_request("GET", "/users/missing"))
    assert response.status_code == 404
    assert response.json() == {"error": "User not found", "userId": "missing"}


async def test_update_requires_body(router):
    response = await router.handle(make_request("PUT", "/users/u1", ""))
    assert response.status_code == 400
    assert response.json() == {"error": "Request body is required"}


async def test_update_refreshes_updated_at(router, kv):
    user = await _create(router)
    assert user["updatedAt"] >= user["createdAt"]

    response = await router.handle(make_request(
        "PUT", f"/users/{user['id']}", {"name": "Alicia", "role": "admin"},
    ))
    assert response.status_code == 200
    assert response.json() == {"message": "User updated successfully", "userId": user["id"]}

    stored = (await kv.get("test-table", {"id": user["id"]})).item
    assert stored["name"] == "Alicia"
    assert stored["email"] == "alice@x.com"
    assert "role" not in stored
    assert stored["updatedAt"] > user["updatedAt"]
    assert stored["createdAt"] == user["createdAt"]


async def test_delete_is_idempotent(router):
    user = await _create(router)

    for _ in range(2):
        response = await router.handle(make_request("DELETE", f"/users/{user['id']}"))
        assert response.status_code == 200
        assert response.json()["userId"] == user["id"]

    missing = await router.handle(make_request("GET", f"/users/{user['id']}"))
    assert missing.status_code == 404


# --- Files ---


async def test_list_files_filters_by_prefix(router, blobs):
    for key in ("a/x", "a/y", "b/z"):
        await blobs.put("test-bucket", key, "data")

    response = await router.handle(make_request("GET", "/files", query={"prefix": "a/"}))
    body = response.json()

    assert response.status_code == 200
    assert {f["key"] for f in body["files"]} == {"a/x", "a/y"}
    assert body["count"] == 2


async def test_missing_file_is_404_but_missing_namespace_lists_empty(router):
    """get on an absent resource errors; listing an absent namespace doesn't."""
    response = await router.handle(make_request("GET", "/files/nonexistent"))
    assert response.status_code == 404
    assert response.json() == {"error": "File not found", "fileName": "nonexistent"}

    listing = await router.handle(make_request("GET", "/files", query={"prefix": "nonexistent-bucket-namespace"}))
    assert listing.status_code == 200
    assert listing.json()["files"] == []
    assert listing.json()["count"] == 0


async def test_upload_then_download(router):
    response = await router.handle(make_request("POST", "/files", {"fileName": "notes.txt", "content": "hello"}))
    body = response.json()

    assert response.status_code == 201
    assert body["fileName"] == "notes.txt"
    assert body["location"] == "s3://test-bucket/uploads/notes.txt"

    download = await router.handle(make_request("GET", "/files/notes.txt"))
    assert download.status_code == 200
    assert download.body == "hello"
    assert download.headers["Content-Type"] == "text/plain"
    assert download.headers["Access-Control-Allow-Origin"] == "*"


async def test_upload_generates_file_name(router):
    response = await router.handle(make_request("POST", "/files", {"content": "x"}))
    name = response.json()["fileName"]
    assert name.startswith("file-") and name.endswith(".txt")


async def test_upload_requires_content(router):
    response = await router.handle(make_request("POST", "/files", {"fileName": "a.txt"}))
    assert response.status_code == 400
    assert response.json() == {"error": "File content is required"}


async def test_upload_rejects_nested_file_name(router):
    response = await router.handle(make_request("POST", "/files", {"fileName": "../a.txt", "content": "x"}))
    assert response.status_code == 400


async def test_get_file_from_other_folder(router, blobs):
    await blobs.put("test-bucket", "documents/readme.txt", "Welcome", "text/plain")

    response = await router.handle(make_request("GET", "/files/readme.txt", query={"folder": "documents"}))
    assert response.status_code == 200
    assert response.body == "Welcome"


async def test_binary_file_is_base64_encoded(router, blobs):
    await blobs.put("test-bucket", "uploads/img.bin", b"\xff\xd8\xff", "image/jpeg")

    response = await router.handle(make_request("GET", "/files/img.bin"))
    assert response.is_base64_encoded
    assert base64.b64decode(response.body) == b"\xff\xd8\xff"
    assert response.headers["Content-Type"] == "image/jpeg"


# --- Errors and telemetry ---


async def test_wrong_method_is_405(router):
    response = await router.handle(make_request("DELETE", "/files"))
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed", "method": "DELETE", "path": "/files"}


async def test_unknown_route_is_404(router):
    response = await router.handle(make_request("GET", "/nope"))
    assert response.status_code == 404
    assert response.json() == {"error": "Route not found", "path": "/nope", "method": "GET"}
    assert response.headers["Content-Type"] == "application/json"


async def test_store_failure_is_500_with_error_metric(blobs, observer, settings):
    router = Router(BrokenKeyValueStore(), blobs, observer, settings)

    response = await router.handle(make_request("GET", "/users"))
    body = response.json()

    assert response.status_code == 500
    assert body["error"] == "Failed to fetch users"
    assert "ResourceNotFoundException" in body["message"]
    assert observer.metrics("DatabaseErrors")[0]["dimensions"] == {"Operation": "Scan"}
    assert len(observer.metrics("FailedRequests")) == 1


async def test_operation_metrics_recorded(router, observer):
    await _create(router)

    assert observer.metrics("RequestCount")[0]["dimensions"]["Method"] == "POST"
    assert observer.metrics("UsersCreated")[0]["value"] == 1
    operations = [m["dimensions"]["Operation"] for m in observer.metrics("DatabaseOperations")]
    assert operations == ["PutItem"]
    assert observer.metrics("RequestDuration")[0]["unit"] == "Milliseconds"


async def test_failing_observer_does_not_break_requests(kv, blobs, settings):
    class ExplodingObserver(CollectingObserver):
        def on_event(self, kind, fields):
            raise RuntimeError("telemetry down")

    router = Router(kv, blobs, ExplodingObserver(), settings)
    response = await router.handle(make_request("GET", "/health"))
    assert response.status_code == 200


async def test_profiles_can_be_disabled(kv, blobs, observer, settings):
    settings.user_profiles = False
    router = Router(kv, blobs, observer, settings)

    created = (await router.handle(make_request("POST", "/users", {"name": "A"}))).json()
    assert "profileLocation" not in created

    fetched = (await router.handle(make_request("GET", f"/users/{created['user']['id']}"))).json()
    assert "profile" not in fetched
    assert (await blobs.list("test-bucket")).key_count == 0


async def test_request_count_uses_route_template(router, observer):
    await router.handle(make_request("GET", "/users/user-123"))
    await router.handle(make_request("GET", "/files/notes.txt"))
    await router.handle(make_request("GET", "/nope/really"))

    paths = [m["dimensions"]["Path"] for m in observer.metrics("RequestCount")]
    assert paths == ["/users/{id}", "/files/{fileName}", "unmatched"]
