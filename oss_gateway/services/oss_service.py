"""Object storage service.

This module provides the application service layer between the REST facade
and the storage client: idempotent bucket creation, bucket lookup by name,
upload with metadata read-back, and presigned URL generation. Each storage
call is timed, counted and logged; provider exceptions are re-raised as is.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Generator

from oss_gateway.common.config import MAX_URL_EXPIRES_MINUTES, Settings, get_settings
from oss_gateway.infra.observability.metrics import STORAGE_LATENCY, STORAGE_OPERATIONS
from oss_gateway.infra.storage.client import (
    BucketInfo,
    ObjectContent,
    ObjectInfo,
    ObjectSummary,
    StorageClient,
)
from oss_gateway.infra.storage.s3_client import S3StorageClient

logger = logging.getLogger("oss")


class StorageServiceError(Exception):
    """Base class for storage service level exceptions."""


class StorageNotConfiguredError(StorageServiceError):
    """Raised when the storage backend is disabled or lacks credentials."""


class BucketNotFoundError(StorageServiceError):
    """Raised when no bucket with the requested name exists."""

    def __init__(self, bucket: str) -> None:
        super().__init__(f"Bucket '{bucket}' not found")
        self.bucket = bucket


class InvalidObjectOperationError(StorageServiceError):
    """Raised when request parameters cannot be passed to the provider."""


@dataclass(frozen=True, slots=True)
class PresignedUrl:
    """A presigned URL together with what it grants access to."""

    bucket: str
    object: str
    url: str
    expires: int


class OssService:
    """Application service wrapping a single long-lived storage client."""

    def __init__(
        self,
        *,
        storage_client: StorageClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._storage = storage_client or self._build_storage_client(self._settings)

    @staticmethod
    def _build_storage_client(settings: Settings) -> StorageClient:
        """Build the storage client, validating the configuration first."""
        if not settings.OSS_ENABLED:
            raise StorageNotConfiguredError("Object storage is disabled (OSS_ENABLED=false)")
        if not settings.OSS_ACCESS_KEY or not settings.OSS_SECRET_KEY:
            raise StorageNotConfiguredError(
                "OSS_ACCESS_KEY and OSS_SECRET_KEY are required"
            )
        return S3StorageClient(settings=settings)

    @property
    def storage(self) -> StorageClient:
        return self._storage

    @contextmanager
    def _track(self, operation: str, **context: str) -> Generator[None, None, None]:
        start = time.perf_counter()
        outcome = "error"
        try:
            yield
            outcome = "success"
        finally:
            elapsed = time.perf_counter() - start
            STORAGE_OPERATIONS.labels(operation, outcome).inc()
            STORAGE_LATENCY.labels(operation).observe(elapsed)
            logger.log(
                logging.INFO if outcome == "success" else logging.WARNING,
                "storage_call operation=%s outcome=%s duration_ms=%.3f",
                operation,
                outcome,
                round(elapsed * 1000, 3),
                extra={"extra": {"operation": operation, "outcome": outcome, **context}},
            )

    def _expires_minutes(self, expires: int | None) -> int:
        minutes = self._settings.OSS_URL_EXPIRES_MINUTES if expires is None else int(expires)
        if not 1 <= minutes <= MAX_URL_EXPIRES_MINUTES:
            raise InvalidObjectOperationError(
                f"expires must be between 1 and {MAX_URL_EXPIRES_MINUTES} minutes"
            )
        return minutes

    # Buckets

    def create_bucket(self, bucket: str) -> BucketInfo:
        """Create a bucket unless it already exists.

        Returns:
            The bucket as reported by the bucket listing.

        Raises:
            BucketNotFoundError: If the bucket is not listed afterwards, e.g.
                when the name exists but belongs to another account.
        """
        if self.bucket_exists(bucket):
            logger.info("bucket_already_exists bucket=%s", bucket)
        else:
            with self._track("create_bucket", bucket=bucket):
                self._storage.create_bucket(bucket=bucket)
        return self.get_bucket(bucket)

    def list_buckets(self) -> list[BucketInfo]:
        with self._track("list_buckets"):
            return self._storage.list_buckets()

    def get_bucket(self, bucket: str) -> BucketInfo:
        """Look a bucket up by name.

        Raises:
            BucketNotFoundError: If no listed bucket has that name.
        """
        with self._track("get_bucket", bucket=bucket):
            found = self._storage.get_bucket(bucket=bucket)
        if found is None:
            raise BucketNotFoundError(bucket)
        return found

    def bucket_exists(self, bucket: str) -> bool:
        with self._track("bucket_exists", bucket=bucket):
            return self._storage.bucket_exists(bucket=bucket)

    def remove_bucket(self, bucket: str) -> None:
        with self._track("remove_bucket", bucket=bucket):
            self._storage.remove_bucket(bucket=bucket)

    # Objects

    def put_object(
        self,
        bucket: str,
        name: str,
        stream: BinaryIO,
        *,
        size: int,
        content_type: str | None = None,
    ) -> ObjectInfo:
        """Upload an object and return its metadata as stored.

        Raises:
            InvalidObjectOperationError: If the object name is empty or the
                size is negative.
        """
        if not name or not name.strip():
            raise InvalidObjectOperationError("object name must not be empty")
        if size < 0:
            raise InvalidObjectOperationError("size must not be negative")
        with self._track("put_object", bucket=bucket, object=name):
            self._storage.put_object(
                bucket=bucket,
                object_key=name,
                stream=stream,
                size=size,
                content_type=content_type,
            )
        return self.get_object_info(bucket, name)

    def get_object_info(self, bucket: str, name: str) -> ObjectInfo:
        with self._track("get_object_info", bucket=bucket, object=name):
            return self._storage.get_object_info(bucket=bucket, object_key=name)

    def get_object(self, bucket: str, name: str) -> ObjectContent:
        with self._track("get_object", bucket=bucket, object=name):
            return self._storage.get_object(bucket=bucket, object_key=name)

    def list_objects(self, bucket: str, prefix: str) -> list[ObjectSummary]:
        with self._track("list_objects", bucket=bucket, prefix=prefix):
            return self._storage.list_objects_by_prefix(bucket=bucket, prefix=prefix)

    def presign_get(self, bucket: str, name: str, expires: int | None = None) -> PresignedUrl:
        """Presign a download URL valid for ``expires`` minutes (default 10)."""
        minutes = self._expires_minutes(expires)
        with self._track("presign_get", bucket=bucket, object=name):
            url = self._storage.presign_get_url(
                bucket=bucket, object_key=name, expires_in=minutes * 60
            )
        return PresignedUrl(bucket=bucket, object=name, url=url, expires=minutes)

    def presign_put(self, bucket: str, name: str, expires: int | None = None) -> PresignedUrl:
        """Presign an upload URL valid for ``expires`` minutes (default 10)."""
        minutes = self._expires_minutes(expires)
        with self._track("presign_put", bucket=bucket, object=name):
            url = self._storage.presign_put_url(
                bucket=bucket, object_key=name, expires_in=minutes * 60
            )
        return PresignedUrl(bucket=bucket, object=name, url=url, expires=minutes)

    def object_url(self, bucket: str, name: str) -> str:
        return self._storage.get_url(bucket=bucket, object_key=name)

    def remove_object(self, bucket: str, name: str) -> None:
        with self._track("remove_object", bucket=bucket, object=name):
            self._storage.remove_object(bucket=bucket, object_key=name)

    # Lifecycle

    def ping(self) -> int:
        """Round-trip to the provider; returns the number of visible buckets."""
        return len(self.list_buckets())

    def close(self) -> None:
        self._storage.close()
