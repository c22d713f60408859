"""Bucket API router."""

from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from oss_gateway.api.v1.deps import get_oss_service
from oss_gateway.api.v1.schemas.buckets import BucketOut
from oss_gateway.services.oss_service import BucketNotFoundError, OssService

router = APIRouter()

BucketName = Annotated[str, Path(min_length=1, max_length=255, description="Bucket name")]


def _bucket_not_found(exc: BucketNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"message": str(exc), "error_code": "bucket_not_found"},
    )


@router.post(
    "/bucket/{bucket}",
    response_model=BucketOut,
    summary="Create bucket",
    description="Create the bucket if it does not exist yet and return it.",
)
def create_bucket(
    bucket: BucketName,
    service: OssService = Depends(get_oss_service),
) -> BucketOut:
    try:
        created = service.create_bucket(bucket)
    except BucketNotFoundError as exc:
        raise _bucket_not_found(exc) from exc
    return BucketOut.model_validate(created)


@router.get(
    "/bucket",
    response_model=List[BucketOut],
    summary="List buckets",
)
def list_buckets(service: OssService = Depends(get_oss_service)) -> List[BucketOut]:
    return [BucketOut.model_validate(item) for item in service.list_buckets()]


@router.get(
    "/bucket/{bucket}",
    response_model=BucketOut,
    summary="Get bucket",
    description="Find a bucket by name in the bucket listing.",
)
def get_bucket(
    bucket: BucketName,
    service: OssService = Depends(get_oss_service),
) -> BucketOut:
    try:
        found = service.get_bucket(bucket)
    except BucketNotFoundError as exc:
        raise _bucket_not_found(exc) from exc
    return BucketOut.model_validate(found)


@router.delete(
    "/bucket/{bucket}",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete bucket",
)
def delete_bucket(
    bucket: BucketName,
    service: OssService = Depends(get_oss_service),
) -> None:
    service.remove_bucket(bucket)
