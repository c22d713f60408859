"""Pydantic schemas for bucket API endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BucketOut(BaseModel):
    """Response model for a bucket."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    creation_date: datetime | None = None
