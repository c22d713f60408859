from __future__ import annotations

import os
from unittest.mock import patch

import pytest

# Credentials must be present before oss_gateway.main builds its module-level app.
os.environ.setdefault("OSS_ENDPOINT", "http://localhost:9000")
os.environ.setdefault("OSS_ACCESS_KEY", "test-access-key")
os.environ.setdefault("OSS_SECRET_KEY", "test-secret-key")
os.environ["OSS_ENABLED"] = "true"
os.environ["OSS_INFO"] = "true"
os.environ["API_KEY_ENABLED"] = "false"
os.environ["TRACE_HTTP"] = "false"
os.environ.pop("OSS_HTTP_PREFIX", None)

from fastapi.testclient import TestClient  # noqa: E402

from oss_gateway.common.config import get_settings  # noqa: E402

from tests.services.mock_storage import MockStorageClient  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings_cache():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture
def storage() -> MockStorageClient:
    return MockStorageClient()


@pytest.fixture
def client(storage: MockStorageClient):
    """TestClient for a fresh app whose storage client is the in-memory mock."""
    from oss_gateway.main import create_app

    with patch(
        "oss_gateway.services.oss_service.OssService._build_storage_client",
        return_value=storage,
    ):
        app = create_app()
    with TestClient(app) as test_client:
        yield test_client
