"""API tests for bucket endpoints."""

from __future__ import annotations


class TestCreateBucket:
    def test_creates_and_returns_bucket(self, client):
        resp = client.post("/oss/bucket/test-oss")

        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "test-oss"
        assert data["creation_date"] is not None

    def test_second_create_returns_existing_bucket(self, client, storage):
        first = client.post("/oss/bucket/test-oss").json()
        second = client.post("/oss/bucket/test-oss")

        assert second.status_code == 200
        assert second.json() == first
        assert storage.calls.count("create_bucket") == 1


class TestListBuckets:
    def test_lists_created_buckets(self, client):
        client.post("/oss/bucket/b-one")
        client.post("/oss/bucket/b-two")

        resp = client.get("/oss/bucket")

        assert resp.status_code == 200
        assert [b["name"] for b in resp.json()] == ["b-one", "b-two"]

    def test_empty_listing(self, client):
        resp = client.get("/oss/bucket")

        assert resp.status_code == 200
        assert resp.json() == []


class TestGetBucket:
    def test_returns_bucket(self, client):
        client.post("/oss/bucket/test-oss")

        resp = client.get("/oss/bucket/test-oss")

        assert resp.status_code == 200
        assert resp.json()["name"] == "test-oss"

    def test_returns_404_for_unknown_bucket(self, client):
        resp = client.get("/oss/bucket/missing")

        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["error_code"] == "bucket_not_found"
        assert "missing" in body["detail"]


class TestDeleteBucket:
    def test_delete_removes_bucket_from_list(self, client):
        client.post("/oss/bucket/test-oss")

        resp = client.delete("/oss/bucket/test-oss")

        assert resp.status_code == 202
        assert client.get("/oss/bucket").json() == []
        assert client.get("/oss/bucket/test-oss").status_code == 404

    def test_delete_unknown_bucket_surfaces_provider_error(self, client):
        resp = client.delete("/oss/bucket/missing")

        assert resp.status_code == 404
        body = resp.json()
        assert body["error_code"] == "storage_error"
        assert body["detail"]["provider_code"] == "NoSuchBucket"
        assert body["detail"]["operation"] == "DeleteBucket"

    def test_delete_non_empty_bucket_conflicts(self, client):
        client.post("/oss/bucket/test-oss")
        client.post(
            "/oss/object/test-oss",
            files={"file": ("a.txt", b"data", "text/plain")},
        )

        resp = client.delete("/oss/bucket/test-oss")

        assert resp.status_code == 409
        assert resp.json()["detail"]["provider_code"] == "BucketNotEmpty"
