import json
import logging
import re
import time
import uuid
from typing import Any

from fastapi import Request
from starlette.concurrency import iterate_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from oss_gateway.common.config import get_settings
from oss_gateway.infra.observability.metrics import LATENCY, REQUESTS

TRACE_BODY_LIMIT = 2048

SENSITIVE_KEYS = {
    "password",
    "secret",
    "token",
    "api_key",
    "x-api-key",
    "authorization",
    "access_key",
    "secret_key",
}

# Presigned URLs carry credentials in their query string.
SENSITIVE_PATTERNS = [
    re.compile(
        r"(?i)(token|secret|api_key|x-api-key|password|authorization)\s*[:=]\s*[^\s]+"
    ),
    re.compile(r"(?i)(X-Amz-Signature|X-Amz-Credential|X-Amz-Security-Token)=[^&\"\s]+"),
]

# 上传的文件内容不记录日志
UNTRACED_CONTENT_TYPES = ("multipart/form-data", "application/octet-stream")


def mask_payload(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {
            k: "***"
            if isinstance(k, str) and k.lower() in SENSITIVE_KEYS
            else mask_payload(v)
            for k, v in obj.items()
        }
    if isinstance(obj, list):
        return [mask_payload(x) for x in obj]
    if isinstance(obj, str):
        return mask_text(obj)
    return obj


def mask_text(text: str) -> str:
    masked = text
    for pattern in SENSITIVE_PATTERNS:
        masked = pattern.sub(lambda m: f"{m.group(1)}=***", masked)
    return masked


def render_body(raw_body: bytes) -> str:
    decoded = raw_body.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(decoded)
    except ValueError:
        rendered = mask_text(decoded)
    else:
        rendered = json.dumps(mask_payload(parsed), ensure_ascii=False)
    if len(rendered) > TRACE_BODY_LIMIT:
        rendered = rendered[:TRACE_BODY_LIMIT] + "...<truncated>"
    return rendered


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


class MetricsMiddleware(BaseHTTPMiddleware):
    async def _trace_request_body(self, request: Request) -> str | None:
        content_type = request.headers.get("Content-Type", "")
        if content_type.startswith(UNTRACED_CONTENT_TYPES):
            length = request.headers.get("Content-Length") or "?"
            return f"<{content_type.split(';')[0]} {length} bytes>"
        raw_body = await request.body()
        if not raw_body:
            return None

        async def receive():
            return {"type": "http.request", "body": raw_body, "more_body": False}

        request._receive = receive
        return render_body(raw_body)

    async def _trace_response_body(self, response) -> str | None:
        body = b""
        async for chunk in response.body_iterator:
            body += chunk
        response.body_iterator = iterate_in_threadpool(iter([body]))
        return render_body(body) if body else None

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        client_ip = _client_ip(request)
        logger = logging.getLogger("http")

        trace_http = get_settings().TRACE_HTTP
        request_body: str | None = None
        if trace_http:
            request_body = await self._trace_request_body(request)

        base_payload = {
            "method": request.method,
            "query": mask_text(request.url.query),
            "request_id": request_id,
            "client_ip": client_ip,
            "user_agent": request.headers.get("User-Agent"),
        }

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = round((time.perf_counter() - start) * 1000, 3)
            logger.exception(
                "request_error method=%s route=%s status=%s duration_ms=%.3f request_id=%s",
                request.method,
                request.url.path,
                500,
                duration_ms,
                request_id,
                extra={
                    "extra": {
                        **base_payload,
                        "route": request.url.path,
                        "status": 500,
                        "duration_ms": duration_ms,
                        "exception": repr(exc),
                    }
                },
            )
            raise

        elapsed = time.perf_counter() - start
        route_template = request.scope.get("route", None)
        if route_template and hasattr(route_template, "path"):
            route = route_template.path
        else:
            route = request.url.path

        REQUESTS.labels(request.method, route, str(response.status_code)).inc()
        LATENCY.labels(request.method, route).observe(elapsed)

        if "X-Request-Id" not in response.headers:
            response.headers["X-Request-Id"] = request_id

        level = logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING

        duration_ms = round(elapsed * 1000, 3)
        payload = {
            **base_payload,
            "route": route,
            "status": response.status_code,
            "duration_ms": duration_ms,
        }
        if trace_http:
            payload["request_body"] = request_body
            payload["response_body"] = await self._trace_response_body(response)

        logger.log(
            level,
            "request method=%s route=%s status=%s duration_ms=%.3f request_id=%s client_ip=%s",
            request.method,
            route,
            response.status_code,
            duration_ms,
            request_id,
            client_ip or "-",
            extra={"extra": payload},
        )
        return response
