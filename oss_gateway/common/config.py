from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

# S3 rejects presigned URLs valid for longer than seven days.
MAX_URL_EXPIRES_MINUTES = 7 * 24 * 60


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _as_prefix(value: str | None) -> str:
    if not value:
        return ""
    cleaned = value.strip().rstrip("/")
    if not cleaned:
        return ""
    return cleaned if cleaned.startswith("/") else f"/{cleaned}"


@dataclass
class Settings:
    OSS_ENABLED: bool = True
    OSS_INFO: bool = True
    OSS_HTTP_PREFIX: str = ""
    OSS_ENDPOINT: str | None = None
    OSS_REGION: str = "us-east-1"
    OSS_ACCESS_KEY: str | None = None
    OSS_SECRET_KEY: str | None = None
    OSS_PATH_STYLE_ACCESS: bool = True
    OSS_CHUNKED_ENCODING: bool = False
    OSS_URL_EXPIRES_MINUTES: int = 10
    ENABLE_METRICS: bool = True
    API_KEY_ENABLED: bool = False
    API_KEY: str | None = None
    CORS_ENABLED: bool = False
    CORS_ORIGINS: list[str] = field(default_factory=list)
    TRACE_HTTP: bool = False
    LOG_LEVEL: str = "INFO"

    def __post_init__(self) -> None:
        if self.API_KEY_ENABLED and not self.API_KEY:
            raise ValueError("API_KEY_ENABLED=true requires API_KEY to be set.")
        if not 1 <= self.OSS_URL_EXPIRES_MINUTES <= MAX_URL_EXPIRES_MINUTES:
            raise ValueError(
                f"OSS_URL_EXPIRES_MINUTES must be between 1 and {MAX_URL_EXPIRES_MINUTES}."
            )

    @property
    def oss_routes_enabled(self) -> bool:
        # the endpoints need a storage client behind them
        return self.OSS_ENABLED and self.OSS_INFO

    @property
    def oss_route_prefix(self) -> str:
        return f"{self.OSS_HTTP_PREFIX}/oss"

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        return cls(
            OSS_ENABLED=_as_bool(os.environ.get("OSS_ENABLED"), cls.OSS_ENABLED),
            OSS_INFO=_as_bool(os.environ.get("OSS_INFO"), cls.OSS_INFO),
            OSS_HTTP_PREFIX=_as_prefix(os.environ.get("OSS_HTTP_PREFIX")),
            OSS_ENDPOINT=os.environ.get("OSS_ENDPOINT") or None,
            OSS_REGION=os.environ.get("OSS_REGION") or cls.OSS_REGION,
            OSS_ACCESS_KEY=os.environ.get("OSS_ACCESS_KEY"),
            OSS_SECRET_KEY=os.environ.get("OSS_SECRET_KEY"),
            OSS_PATH_STYLE_ACCESS=_as_bool(
                os.environ.get("OSS_PATH_STYLE_ACCESS"), cls.OSS_PATH_STYLE_ACCESS
            ),
            OSS_CHUNKED_ENCODING=_as_bool(
                os.environ.get("OSS_CHUNKED_ENCODING"), cls.OSS_CHUNKED_ENCODING
            ),
            OSS_URL_EXPIRES_MINUTES=int(
                os.environ.get("OSS_URL_EXPIRES_MINUTES", cls.OSS_URL_EXPIRES_MINUTES)
            ),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
            API_KEY_ENABLED=_as_bool(
                os.environ.get("API_KEY_ENABLED"), cls.API_KEY_ENABLED
            ),
            API_KEY=os.environ.get("API_KEY"),
            CORS_ENABLED=_as_bool(os.environ.get("CORS_ENABLED"), cls.CORS_ENABLED),
            CORS_ORIGINS=_as_list(os.environ.get("CORS_ORIGINS")),
            TRACE_HTTP=_as_bool(os.environ.get("TRACE_HTTP"), cls.TRACE_HTTP),
            LOG_LEVEL=(os.environ.get("LOG_LEVEL") or cls.LOG_LEVEL).upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
