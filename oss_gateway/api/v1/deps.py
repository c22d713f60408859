from __future__ import annotations

import logging

from fastapi import Header, HTTPException, Request

from oss_gateway.common.config import get_settings
from oss_gateway.services.oss_service import OssService

logger = logging.getLogger("http")


def get_oss_service(request: Request) -> OssService:
    service = getattr(request.app.state, "oss_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Object storage is not enabled")
    return service


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    settings = get_settings()
    if settings.API_KEY_ENABLED:
        if not settings.API_KEY or x_api_key != settings.API_KEY:
            preview = f"{x_api_key[:4]}***" if x_api_key else "<missing>"
            logger.warning("api_key_mismatch api_key_preview=%s", preview)
            raise HTTPException(status_code=401, detail="Invalid API key")
