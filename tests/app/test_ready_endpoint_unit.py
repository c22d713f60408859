"""测试 /ready 与应用生命周期（使用内存存储，避免真实对象存储依赖）。"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from botocore.exceptions import EndpointConnectionError
from fastapi.testclient import TestClient

from oss_gateway.main import create_app
from oss_gateway.services.oss_service import StorageNotConfiguredError

from tests.services.mock_storage import client_error


def test_ready_reports_bucket_count(client, storage):
    client.post("/oss/bucket/a")

    resp = client.get("/ready")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ready", "detail": {"buckets": 1}}


def test_ready_reports_provider_error(client, storage):
    with patch.object(
        storage, "list_buckets", side_effect=client_error("AccessDenied", 403, "ListBuckets")
    ):
        resp = client.get("/ready")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "not_ready"
    assert "AccessDenied" in body["detail"]["oss"]


def test_ready_reports_unreachable_endpoint(client, storage):
    error = EndpointConnectionError(endpoint_url="http://localhost:9000")
    with patch.object(storage, "list_buckets", side_effect=error):
        resp = client.get("/ready")

    assert resp.json()["status"] == "not_ready"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_shutdown_closes_storage_client(storage):
    with patch(
        "oss_gateway.services.oss_service.OssService._build_storage_client",
        return_value=storage,
    ):
        app = create_app()

    with TestClient(app):
        assert storage.closed is False
    assert storage.closed is True


def test_missing_credentials_abort_startup(monkeypatch):
    monkeypatch.setenv("OSS_ACCESS_KEY", "")

    with pytest.raises(StorageNotConfiguredError):
        create_app()
