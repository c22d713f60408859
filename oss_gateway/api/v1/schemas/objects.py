"""Pydantic schemas for object API endpoints.

Field values are copied from the provider's response for the current request;
nothing here is persisted by the gateway.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ObjectOut(BaseModel):
    """Metadata of an uploaded object."""

    model_config = ConfigDict(from_attributes=True)

    bucket: str
    key: str
    size_bytes: int
    etag: str | None = None
    content_type: str | None = None
    last_modified: datetime | None = None
    storage_class: str | None = None


class ObjectSummaryOut(BaseModel):
    """One entry of a prefix listing."""

    model_config = ConfigDict(from_attributes=True)

    key: str
    size_bytes: int
    etag: str | None = None
    last_modified: datetime | None = None
    storage_class: str | None = None


class PresignedUrlOut(BaseModel):
    """A presigned URL; ``expires`` is its lifetime in minutes."""

    model_config = ConfigDict(from_attributes=True)

    bucket: str
    object: str
    url: str
    expires: int
