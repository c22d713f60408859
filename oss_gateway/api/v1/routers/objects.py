"""Object API router.

Uploads arrive as multipart form data (field ``file``) and are streamed
straight to the provider. Presigned URL lifetimes are given in minutes.
"""

from __future__ import annotations

import os
from typing import Annotated, List

from fastapi import APIRouter, Depends, File, HTTPException, Path, UploadFile, status

from oss_gateway.api.v1.deps import get_oss_service
from oss_gateway.api.v1.schemas.objects import ObjectOut, ObjectSummaryOut, PresignedUrlOut
from oss_gateway.common.config import MAX_URL_EXPIRES_MINUTES
from oss_gateway.services.oss_service import InvalidObjectOperationError, OssService

router = APIRouter()

BucketName = Annotated[str, Path(min_length=1, max_length=255, description="Bucket name")]
ObjectName = Annotated[str, Path(min_length=1, description="Object key or key prefix")]
ExpiresMinutes = Annotated[
    int,
    Path(ge=1, le=MAX_URL_EXPIRES_MINUTES, description="URL lifetime in minutes"),
]


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return int(upload.size)
    stream = upload.file
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def _store_upload(
    service: OssService, bucket: str, name: str | None, upload: UploadFile
) -> ObjectOut:
    if not name:
        raise HTTPException(status_code=400, detail="Uploaded file has no filename")
    try:
        info = service.put_object(
            bucket,
            name,
            upload.file,
            size=_upload_size(upload),
            content_type=upload.content_type,
        )
    except InvalidObjectOperationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    finally:
        upload.file.close()
    return ObjectOut.model_validate(info)


@router.post(
    "/object/{bucket}",
    response_model=ObjectOut,
    summary="Upload object",
    description="Upload a file using its original filename as the object key.",
)
def create_object(
    bucket: BucketName,
    file: UploadFile = File(...),
    service: OssService = Depends(get_oss_service),
) -> ObjectOut:
    return _store_upload(service, bucket, file.filename, file)


@router.post(
    "/object/{bucket}/{name}",
    response_model=ObjectOut,
    summary="Upload object with key",
    description="Upload a file under the given object key.",
)
def create_named_object(
    bucket: BucketName,
    name: ObjectName,
    file: UploadFile = File(...),
    service: OssService = Depends(get_oss_service),
) -> ObjectOut:
    return _store_upload(service, bucket, name, file)


@router.get(
    "/object/put/{bucket}/{name}/{expires}",
    response_model=PresignedUrlOut,
    summary="Presign upload URL",
    description="Generate a presigned PUT URL valid for `expires` minutes.",
)
def get_put_object_url(
    bucket: BucketName,
    name: ObjectName,
    expires: ExpiresMinutes,
    service: OssService = Depends(get_oss_service),
) -> PresignedUrlOut:
    return PresignedUrlOut.model_validate(service.presign_put(bucket, name, expires))


@router.get(
    "/object/{bucket}/{name}",
    response_model=List[ObjectSummaryOut],
    summary="List objects by prefix",
    description="List objects whose key starts with `name`.",
)
def filter_objects(
    bucket: BucketName,
    name: ObjectName,
    service: OssService = Depends(get_oss_service),
) -> List[ObjectSummaryOut]:
    return [
        ObjectSummaryOut.model_validate(item)
        for item in service.list_objects(bucket, name)
    ]


@router.get(
    "/object/{bucket}/{name}/{expires}",
    response_model=PresignedUrlOut,
    summary="Presign download URL",
    description="Generate a presigned GET URL valid for `expires` minutes.",
)
def get_object_url(
    bucket: BucketName,
    name: ObjectName,
    expires: ExpiresMinutes,
    service: OssService = Depends(get_oss_service),
) -> PresignedUrlOut:
    return PresignedUrlOut.model_validate(service.presign_get(bucket, name, expires))


@router.delete(
    "/object/{bucket}/{name}/",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete object",
)
def delete_object(
    bucket: BucketName,
    name: ObjectName,
    service: OssService = Depends(get_oss_service),
) -> None:
    service.remove_object(bucket, name)
