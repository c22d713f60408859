from unittest.mock import patch

from botocore.exceptions import EndpointConnectionError
from fastapi.testclient import TestClient

from oss_gateway.main import create_app

from tests.services.mock_storage import client_error


def test_http_exception_problem_json(client):
    # unknown bucket -> 404 with RFC7807 body
    r = client.get("/oss/bucket/missing", headers={"X-Request-Id": "req-1"})
    assert r.status_code == 404
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    for key in ("type", "title", "status", "detail", "instance", "error_code"):
        assert key in body
    assert body["status"] == 404
    assert body["request_id"] == "req-1"


def test_validation_error_problem_json(client):
    r = client.get("/oss/object/test-oss/a.txt/not-a-number")
    assert r.status_code == 422
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    assert body.get("status") == 422
    assert body.get("error_code") == "validation_error"
    assert isinstance(body.get("detail"), list)


def test_client_error_keeps_provider_status(client, storage):
    with patch.object(
        storage, "list_buckets", side_effect=client_error("AccessDenied", 403, "ListBuckets")
    ):
        r = client.get("/oss/bucket")
    assert r.status_code == 403
    body = r.json()
    assert body["title"] == "Storage Error"
    assert body["error_code"] == "storage_error"
    assert body["detail"]["provider_code"] == "AccessDenied"
    assert body["detail"]["operation"] == "ListBuckets"


def test_client_error_without_status_maps_to_500(client, storage):
    error = client_error("InternalError", 200, "ListBuckets")
    error.response["ResponseMetadata"] = {}
    with patch.object(storage, "list_buckets", side_effect=error):
        r = client.get("/oss/bucket")
    assert r.status_code == 500
    assert r.json()["error_code"] == "storage_error"


def test_connection_error_maps_to_bad_gateway(client, storage):
    error = EndpointConnectionError(endpoint_url="http://localhost:9000")
    with patch.object(storage, "list_buckets", side_effect=error):
        r = client.get("/oss/bucket")
    assert r.status_code == 502
    body = r.json()
    assert body["error_code"] == "bad_gateway"
    assert "localhost:9000" in body["detail"]


def test_storage_disabled_hides_endpoints(monkeypatch):
    monkeypatch.setenv("OSS_ENABLED", "false")
    monkeypatch.setenv("OSS_INFO", "false")

    app = create_app()
    client = TestClient(app)

    assert client.get("/oss/bucket").status_code == 404
    assert client.get("/ready").json() == {"status": "ready", "detail": {"oss": "disabled"}}


def test_disabling_storage_alone_starts_without_endpoints(monkeypatch):
    monkeypatch.setenv("OSS_ENABLED", "false")
    monkeypatch.delenv("OSS_INFO")

    app = create_app()
    client = TestClient(app)

    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/oss/bucket").status_code == 404
    assert client.get("/ready").json() == {"status": "ready", "detail": {"oss": "disabled"}}
