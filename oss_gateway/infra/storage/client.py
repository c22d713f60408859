"""Storage client protocol and data types.

This module defines the interface the gateway needs from an S3-compatible
object storage provider: bucket management, object upload and lookup,
prefix listing, and presigned URLs. Provider errors are not translated;
whatever the SDK raises reaches the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Protocol

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class BucketInfo:
    """A bucket as reported by the provider's bucket listing."""

    name: str
    creation_date: datetime | None = None


@dataclass(frozen=True, slots=True)
class ObjectInfo:
    """Metadata of a single stored object."""

    bucket: str
    key: str
    size_bytes: int
    etag: str | None = None
    content_type: str | None = None
    last_modified: datetime | None = None
    storage_class: str | None = None


@dataclass(frozen=True, slots=True)
class ObjectSummary:
    """One entry of a prefix listing."""

    key: str
    size_bytes: int
    etag: str | None = None
    last_modified: datetime | None = None
    storage_class: str | None = None


@dataclass(frozen=True, slots=True)
class ObjectContent:
    """An object's metadata together with its readable body."""

    info: ObjectInfo
    body: BinaryIO

    def read(self) -> bytes:
        return self.body.read()


class StorageClient(Protocol):
    """Protocol defining the interface for object storage backends.

    Every method maps onto exactly one provider call.
    """

    def bucket_exists(self, *, bucket: str) -> bool:
        """Check whether a bucket exists and is accessible.

        Args:
            bucket: Bucket name.

        Returns:
            False when the provider answers "not found", True otherwise.
        """
        ...

    def create_bucket(self, *, bucket: str) -> str | None:
        """Create a bucket.

        Args:
            bucket: Bucket name.

        Returns:
            The bucket location reported by the provider, if any.
        """
        ...

    def list_buckets(self) -> list[BucketInfo]:
        """List all buckets owned by the configured credentials."""
        ...

    def get_bucket(self, *, bucket: str) -> BucketInfo | None:
        """Find a bucket by name in the bucket listing.

        Args:
            bucket: Bucket name.

        Returns:
            The matching BucketInfo, or None when no bucket has that name.
        """
        ...

    def remove_bucket(self, *, bucket: str) -> None:
        """Delete an (empty) bucket."""
        ...

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        stream: BinaryIO,
        size: int,
        content_type: str | None = None,
    ) -> str | None:
        """Upload an object from a stream.

        Args:
            bucket: Target bucket name.
            object_key: Object key (path) in the bucket.
            stream: Readable binary stream positioned at the start of the data.
            size: Number of bytes to upload.
            content_type: MIME type; defaults to application/octet-stream.

        Returns:
            The ETag reported by the provider.
        """
        ...

    def get_object_info(self, *, bucket: str, object_key: str) -> ObjectInfo:
        """Get object metadata without downloading the content."""
        ...

    def get_object(self, *, bucket: str, object_key: str) -> ObjectContent:
        """Download an object. The caller reads and closes the body."""
        ...

    def list_objects_by_prefix(
        self, *, bucket: str, prefix: str
    ) -> list[ObjectSummary]:
        """List objects whose key starts with ``prefix``."""
        ...

    def presign_get_url(
        self, *, bucket: str, object_key: str, expires_in: int
    ) -> str:
        """Generate a presigned GET URL valid for ``expires_in`` seconds."""
        ...

    def presign_put_url(
        self, *, bucket: str, object_key: str, expires_in: int
    ) -> str:
        """Generate a presigned PUT URL valid for ``expires_in`` seconds."""
        ...

    def get_url(self, *, bucket: str, object_key: str) -> str:
        """Build the unsigned URL of an object.

        The URL only works for objects readable without credentials.
        """
        ...

    def remove_object(self, *, bucket: str, object_key: str) -> None:
        """Delete an object from storage."""
        ...

    def close(self) -> None:
        """Release the underlying connection pool."""
        ...
