"""S3-compatible storage client implementation.

This module provides an S3-compatible storage client that works with
AWS S3, MinIO, Aliyun OSS, Tencent COS and other services speaking the
S3 protocol. Each method is a single boto3 call; botocore exceptions
are left to propagate.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, BinaryIO
from urllib.parse import quote, urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from oss_gateway.infra.storage.client import (
    DEFAULT_CONTENT_TYPE,
    BucketInfo,
    ObjectContent,
    ObjectInfo,
    ObjectSummary,
)

if TYPE_CHECKING:
    from oss_gateway.common.config import Settings

# Error codes S3-compatible providers use for a missing bucket on HEAD.
BUCKET_NOT_FOUND_CODES = frozenset({"404", "NoSuchBucket", "NotFound"})


def _etag(value: Any) -> str | None:
    return str(value) if value is not None else None


def _object_info(bucket: str, object_key: str, response: dict[str, Any]) -> ObjectInfo:
    size = response.get("ContentLength")
    return ObjectInfo(
        bucket=bucket,
        key=object_key,
        size_bytes=int(size) if size is not None else 0,
        etag=_etag(response.get("ETag")),
        content_type=response.get("ContentType"),
        last_modified=response.get("LastModified"),
        storage_class=response.get("StorageClass"),
    )


class S3StorageClient:
    """S3-compatible object storage client.

    The boto3 client is created once from settings and shared; boto3 clients
    are safe to use from the request worker threads.
    """

    def __init__(self, *, settings: "Settings") -> None:
        """Initialize the S3 client with configuration from settings.

        Args:
            settings: Application settings containing OSS configuration.
        """
        self._settings = settings
        self._client = self._build_client(settings)

    @staticmethod
    def _build_client(settings: "Settings") -> Any:
        """Create a boto3 S3 client from settings."""
        addressing_style = "path" if settings.OSS_PATH_STYLE_ACCESS else "virtual"
        # Without chunked encoding, checksums are only sent when an operation
        # requires them, so uploads go out as plain signed PUTs.
        checksum_mode = "when_supported" if settings.OSS_CHUNKED_ENCODING else "when_required"
        config = Config(
            signature_version="s3v4",
            s3={"addressing_style": addressing_style},
            request_checksum_calculation=checksum_mode,
            response_checksum_validation=checksum_mode,
        )

        return boto3.client(
            "s3",
            endpoint_url=settings.OSS_ENDPOINT,
            region_name=settings.OSS_REGION,
            aws_access_key_id=settings.OSS_ACCESS_KEY,
            aws_secret_access_key=settings.OSS_SECRET_KEY,
            config=config,
        )

    def bucket_exists(self, *, bucket: str) -> bool:
        """Check whether a bucket exists via HEAD bucket."""
        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in BUCKET_NOT_FOUND_CODES:
                return False
            raise
        return True

    def create_bucket(self, *, bucket: str) -> str | None:
        """Create a bucket and return its location."""
        response = self._client.create_bucket(Bucket=bucket)
        return response.get("Location")

    def list_buckets(self) -> list[BucketInfo]:
        """List all buckets owned by the configured credentials."""
        response = self._client.list_buckets()
        return [
            BucketInfo(name=item["Name"], creation_date=item.get("CreationDate"))
            for item in response.get("Buckets", [])
        ]

    def get_bucket(self, *, bucket: str) -> BucketInfo | None:
        """Find a bucket by scanning the bucket listing."""
        for item in self.list_buckets():
            if item.name == bucket:
                return item
        return None

    def remove_bucket(self, *, bucket: str) -> None:
        """Delete a bucket."""
        self._client.delete_bucket(Bucket=bucket)

    def put_object(
        self,
        *,
        bucket: str,
        object_key: str,
        stream: BinaryIO,
        size: int,
        content_type: str | None = None,
    ) -> str | None:
        """Upload an object from a stream of known size."""
        response = self._client.put_object(
            Bucket=bucket,
            Key=object_key,
            Body=stream,
            ContentLength=int(size),
            ContentType=content_type or DEFAULT_CONTENT_TYPE,
        )
        return _etag(response.get("ETag"))

    def get_object_info(self, *, bucket: str, object_key: str) -> ObjectInfo:
        """Get object metadata without downloading the content."""
        response = self._client.head_object(Bucket=bucket, Key=object_key)
        return _object_info(bucket, object_key, response)

    def get_object(self, *, bucket: str, object_key: str) -> ObjectContent:
        """Download an object; the body is a botocore StreamingBody."""
        response = self._client.get_object(Bucket=bucket, Key=object_key)
        return ObjectContent(
            info=_object_info(bucket, object_key, response),
            body=response["Body"],
        )

    def list_objects_by_prefix(
        self, *, bucket: str, prefix: str
    ) -> list[ObjectSummary]:
        """List objects whose key starts with prefix (first page only)."""
        response = self._client.list_objects(Bucket=bucket, Prefix=prefix)
        return [
            ObjectSummary(
                key=item["Key"],
                size_bytes=int(item.get("Size") or 0),
                etag=_etag(item.get("ETag")),
                last_modified=item.get("LastModified"),
                storage_class=item.get("StorageClass"),
            )
            for item in response.get("Contents", [])
        ]

    def presign_get_url(
        self, *, bucket: str, object_key: str, expires_in: int
    ) -> str:
        """Generate a presigned GET URL."""
        return self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": object_key},
            ExpiresIn=int(expires_in),
        )

    def presign_put_url(
        self, *, bucket: str, object_key: str, expires_in: int
    ) -> str:
        """Generate a presigned PUT URL."""
        return self._client.generate_presigned_url(
            "put_object",
            Params={"Bucket": bucket, "Key": object_key},
            ExpiresIn=int(expires_in),
        )

    def get_url(self, *, bucket: str, object_key: str) -> str:
        """Build the unsigned object URL for the configured addressing style."""
        endpoint = str(self._client.meta.endpoint_url).rstrip("/")
        key = quote(object_key, safe="/")
        if self._settings.OSS_PATH_STYLE_ACCESS:
            return f"{endpoint}/{bucket}/{key}"
        parts = urlsplit(endpoint)
        return f"{parts.scheme}://{bucket}.{parts.netloc}{parts.path}/{key}"

    def remove_object(self, *, bucket: str, object_key: str) -> None:
        """Delete an object from storage."""
        self._client.delete_object(Bucket=bucket, Key=object_key)

    def close(self) -> None:
        """Close the connection pool of the boto3 client."""
        self._client.close()
