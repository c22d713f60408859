from .oss_service import (
    BucketNotFoundError,
    InvalidObjectOperationError,
    OssService,
    PresignedUrl,
    StorageNotConfiguredError,
    StorageServiceError,
)

__all__ = [
    "BucketNotFoundError",
    "InvalidObjectOperationError",
    "OssService",
    "PresignedUrl",
    "StorageNotConfiguredError",
    "StorageServiceError",
]
