"""
访问日志中间件

每个请求一条 request_started 与一条完成日志（按状态码分级），
request_id / user_id 由 RequestIDMiddleware 绑定到 structlog 上下文。
"""
import json
import time
from typing import Any, Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _mask(data: Any, sensitive: frozenset) -> Any:
    if isinstance(data, dict):
        return {k: ("***" if k.lower() in sensitive else _mask(v, sensitive)) for k, v in data.items()}
    if isinstance(data, list):
        return [_mask(v, sensitive) for v in data]
    return data


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    请求体只在开关打开时记录（X-Log-Body 头可覆盖），JSON 体按字段名脱敏
    """

    SKIP_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})
    SENSITIVE_FIELDS = frozenset({"token", "secret", "api_key", "apikey", "private_key"})

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.body_log_default = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT and settings.DEBUG
        self.max_body_bytes = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        info: Dict[str, Any] = {"query_params": dict(request.query_params)}
        if request.method in _BODY_METHODS and self._body_logging_enabled(request):
            body = await self._read_body(request)
            if body is not None:
                info["body"] = body
        logger.info("request_started", **info)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=round(time.perf_counter() - started, 4),
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - started
        status_code = response.status_code
        if status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        else:
            log = logger.info
        log("request_completed", status_code=status_code, duration=round(duration, 4))

        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    def _body_logging_enabled(self, request: Request) -> bool:
        header = (request.headers.get("X-Log-Body") or "").lower()
        if header in {"true", "1", "yes"}:
            return True
        if header in {"false", "0", "no"}:
            return False
        return self.body_log_default

    async def _read_body(self, request: Request) -> Optional[Any]:
        body = await request.body()
        if not body:
            return None
        snippet = body[: self.max_body_bytes].decode("utf-8", errors="ignore")
        if "application/json" not in request.headers.get("content-type", "").lower():
            return snippet
        try:
            return _mask(json.loads(snippet), self.SENSITIVE_FIELDS)
        except ValueError:
            return snippet
