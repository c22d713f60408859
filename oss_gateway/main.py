import logging
from contextlib import asynccontextmanager
from urllib.parse import urlsplit

import uvicorn
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oss_gateway.api.v1.deps import require_api_key
from oss_gateway.api.v1.routers.buckets import router as buckets_router
from oss_gateway.api.v1.routers.objects import router as objects_router
from oss_gateway.common.config import Settings, get_settings
from oss_gateway.common.logging import STARTUP_LOGGER, setup_logging
from oss_gateway.infra.observability.metrics import metrics_app
from oss_gateway.infra.observability.middleware import MetricsMiddleware
from oss_gateway.services.oss_service import OssService

ERROR_CODE_BY_STATUS = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    411: "length_required",
    412: "precondition_failed",
    413: "payload_too_large",
    415: "unsupported_media_type",
    429: "too_many_requests",
    500: "internal_error",
    501: "not_implemented",
    502: "bad_gateway",
    503: "service_unavailable",
}


def _normalize_detail(detail):
    if isinstance(detail, dict):
        maybe_code = detail.get("error_code")
        cleaned = {k: v for k, v in detail.items() if k != "error_code"}
        if len(cleaned) == 1 and "message" in cleaned:
            cleaned = cleaned["message"]
        if not cleaned:
            cleaned = None
        return cleaned, maybe_code if isinstance(maybe_code, str) else None
    return detail, None


def _resolve_error_code(status_code: int, override: str | None = None) -> str:
    if override:
        return override
    if status_code == 422:
        return "validation_error"
    return ERROR_CODE_BY_STATUS.get(status_code, "unknown_error")


def _client_error_status(exc: ClientError) -> int:
    status_code = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if isinstance(status_code, int) and 400 <= status_code < 600:
        return status_code
    return 500


def _mask_secret(value: str | None) -> str:
    if not value:
        return "<missing>"
    return f"{value[:4]}***"


def _describe_storage_target(settings: Settings) -> str:
    endpoint = settings.OSS_ENDPOINT
    if not endpoint:
        return "<aws-default>"
    try:
        parts = urlsplit(endpoint)
    except ValueError:
        return "<invalid OSS_ENDPOINT>"
    if not parts.scheme or not parts.netloc:
        return "<invalid OSS_ENDPOINT>"
    # drop userinfo if someone embedded credentials in the endpoint
    host = parts.netloc.rsplit("@", 1)[-1]
    return f"{parts.scheme}://{host}{parts.path}"


def _format_storage_context(settings: Settings) -> str:
    parts = [
        f"oss_endpoint={_describe_storage_target(settings)}",
        f"oss_region={settings.OSS_REGION}",
        f"oss_access_key={_mask_secret(settings.OSS_ACCESS_KEY)}",
        f"oss_path_style={str(settings.OSS_PATH_STYLE_ACCESS).lower()}",
        f"oss_chunked_encoding={str(settings.OSS_CHUNKED_ENCODING).lower()}",
    ]
    return ", ".join(parts)


def _problem(request: Request, status_code: int, title: str, detail, error_code: str):
    return JSONResponse(
        status_code=status_code,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": title,
            "status": status_code,
            "detail": detail,
            "error_code": error_code,
            "instance": str(request.url),
            "request_id": request.headers.get("X-Request-Id"),
        },
    )


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)
    startup_logger = logging.getLogger(STARTUP_LOGGER)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        service = app.state.oss_service
        if service is not None:
            service.close()
            startup_logger.info("对象存储客户端已关闭。[event=oss_client_closed]")

    app = FastAPI(
        lifespan=lifespan,
        title="OSS Gateway",
        version="v1.0",
        description="REST facade over an S3-compatible object storage provider",
    )

    # Optional CORS
    if settings.CORS_ENABLED:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS or ["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Storage client is built once; configuration errors abort startup here.
    app.state.oss_service = None
    if settings.OSS_ENABLED:
        storage_context = _format_storage_context(settings)
        try:
            app.state.oss_service = OssService(settings=settings)
        except Exception as exc:
            startup_logger.error(
                "对象存储客户端初始化失败，请检查 OSS_* 配置。"
                " [event=oss_client_init_failed] (%s，error=%s)",
                storage_context,
                exc,
            )
            raise
        startup_logger.info(
            "对象存储客户端已就绪。[event=oss_client_ready] (%s)",
            storage_context,
        )
    else:
        startup_logger.info("对象存储已禁用，/oss 端点不挂载。[event=oss_disabled]")

    # Routers
    if settings.oss_routes_enabled:
        for router, tag in ((buckets_router, "buckets"), (objects_router, "objects")):
            app.include_router(
                router,
                prefix=settings.oss_route_prefix,
                tags=[tag],
                dependencies=[Depends(require_api_key)],
            )

    # Metrics
    if settings.ENABLE_METRICS:
        app.add_middleware(MetricsMiddleware)
        app.mount("/metrics", metrics_app)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger = logging.getLogger("http")
        normalized_detail, code_override = _normalize_detail(exc.detail)
        logger.log(
            logging.WARNING if exc.status_code < 500 else logging.ERROR,
            "http_exception status=%s detail=%s method=%s path=%s request_id=%s",
            exc.status_code,
            normalized_detail,
            request.method,
            request.url.path,
            request.headers.get("X-Request-Id"),
            extra={
                "extra": {
                    "status": exc.status_code,
                    "detail": normalized_detail,
                    "method": request.method,
                    "route": request.url.path,
                    "request_id": request.headers.get("X-Request-Id"),
                }
            },
        )
        return _problem(
            request,
            exc.status_code,
            "HTTP Error",
            normalized_detail,
            _resolve_error_code(exc.status_code, code_override),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return _problem(
            request,
            422,
            "Validation Error",
            # 确保可序列化
            jsonable_encoder(exc.errors()),
            _resolve_error_code(422),
        )

    @app.exception_handler(ClientError)
    async def storage_client_error_handler(request: Request, exc: ClientError):
        error = exc.response.get("Error", {})
        status_code = _client_error_status(exc)
        detail = {
            "provider_code": error.get("Code"),
            "message": error.get("Message") or str(exc),
            "operation": exc.operation_name,
        }
        logging.getLogger("oss").log(
            logging.WARNING if status_code < 500 else logging.ERROR,
            "storage_error status=%s provider_code=%s operation=%s path=%s",
            status_code,
            detail["provider_code"],
            detail["operation"],
            request.url.path,
            extra={"extra": {"status": status_code, **detail}},
        )
        return _problem(request, status_code, "Storage Error", detail, "storage_error")

    @app.exception_handler(BotoCoreError)
    async def storage_unavailable_handler(request: Request, exc: BotoCoreError):
        logging.getLogger("oss").error(
            "storage_unavailable error=%s path=%s", exc, request.url.path
        )
        return _problem(
            request, 502, "Storage Unavailable", str(exc), _resolve_error_code(502)
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/ready")
    def ready():
        service: OssService | None = app.state.oss_service
        if service is None:
            return {"status": "ready", "detail": {"oss": "disabled"}}
        try:
            bucket_count = service.ping()
        except (ClientError, BotoCoreError) as exc:
            return {"status": "not_ready", "detail": {"oss": str(exc)}}
        return {"status": "ready", "detail": {"buckets": bucket_count}}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("oss_gateway.main:app", host="0.0.0.0", port=8000, reload=True)
