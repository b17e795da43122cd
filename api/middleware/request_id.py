"""
Request ID 中间件
生成或透传追踪ID，并连同网关透传的调用方ID一起绑定到 structlog 上下文
"""
import uuid
from contextvars import ContextVar
from typing import Optional

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Request ID 追踪中间件

    1. 从 X-Request-ID 获取或生成 request_id
    2. 写入 request.state 与 contextvars
    3. 在响应头中返回 request_id
    """

    HEADER_NAME = "X-Request-ID"
    USER_HEADER_NAME = "X-User-Id"

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        user_id = request.headers.get(self.USER_HEADER_NAME)

        request.state.request_id = request_id
        request_id_var.set(request_id)
        user_id_var.set(user_id)

        structlog.contextvars.clear_contextvars()
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }
        if user_id:
            context["user_id"] = user_id
        structlog.contextvars.bind_contextvars(**context)

        response = await call_next(request)
        response.headers[self.HEADER_NAME] = request_id
        return response


def get_request_id() -> Optional[str]:
    """当前请求的 request_id；不在请求上下文中时为 None"""
    return request_id_var.get()
