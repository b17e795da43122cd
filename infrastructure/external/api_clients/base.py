"""
HTTP JSON 客户端基类

区块浏览器 / RPC 节点客户端共用：
- tenacity 重试：仅超时、网络错误、429 与 5xx
- 429 的 Retry-After 作为下一次等待的下限
- 非 2xx 响应按状态码映射到 APIError 子类
- structlog 记录请求/响应（debug 开启时）与重试
"""
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.logging_config import get_logger


logger = get_logger(__name__)

# 日志中不输出的查询参数
_SECRET_PARAMS = frozenset({"apikey", "api_key", "token"})


@dataclass
class APIResponse:
    """API响应封装"""
    status_code: int
    headers: Dict[str, str]
    data: Any
    raw_content: bytes
    elapsed_ms: float
    request_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    def json(self) -> Any:
        if self.data is not None:
            return self.data
        if not self.raw_content:
            return None
        return json.loads(self.raw_content)


class APIError(Exception):
    """API错误基类"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[APIResponse] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.request_id = response.request_id if response else None
        super().__init__(message)

    def __str__(self):
        parts = [self.message]
        if self.status_code:
            parts.append(f"Status: {self.status_code}")
        if self.request_id:
            parts.append(f"Request ID: {self.request_id}")
        return " | ".join(parts)


class AuthenticationError(APIError):
    """API key 无效或被拒绝"""


class NotFoundError(APIError):
    pass


class RateLimitError(APIError):
    pass


class ServerError(APIError):
    pass


class RetryableAPIError(APIError):
    """可重试的响应（429 / 5xx），重试耗尽后转换为具体错误类型"""

    def __init__(self, response: APIResponse, retry_after: Optional[float] = None):
        super().__init__(
            f"Transient API error with status {response.status_code}",
            status_code=response.status_code,
            response=response,
        )
        self.retry_after = retry_after


RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

_ERROR_BY_STATUS: Dict[int, Type[APIError]] = {
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    429: RateLimitError,
}


def error_for_response(response: APIResponse) -> APIError:
    """按状态码构造错误；响应体里的 message/error/detail 优先作为错误信息"""
    status = response.status_code
    error_class = _ERROR_BY_STATUS.get(status) or (ServerError if status >= 500 else APIError)

    message = f"API request failed with status {status}"
    if isinstance(response.data, dict):
        for key in ("message", "error", "detail"):
            candidate = response.data.get(key)
            if isinstance(candidate, str) and candidate:
                message = candidate
                break
    return error_class(message, status_code=status, response=response)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "api_request_retry",
        attempt=retry_state.attempt_number,
        error=str(exc) if exc else None,
    )


class BaseAPIClient:
    """
    HTTP JSON 客户端基类

    子类只负责拼装端点与解析响应。传入 transport 可替换底层传输（测试用 httpx.MockTransport）。
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        max_retries: int = 1,
        retry_delay: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        debug: bool = False,
    ):
        """
        Args:
            base_url: API基础URL（JSON-RPC 节点即完整端点）
            timeout: 单次请求超时（秒）
            max_retries: 首次请求之外的最大重试次数
            retry_delay: 指数退避的初始等待（秒）
            headers: 额外请求头
            transport: 自定义 httpx 传输层
            debug: 是否记录请求/响应明细
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.debug = debug
        self._transport = transport
        self.default_headers = {
            "Accept": "application/json",
            "User-Agent": "AI-Goods-Marketplace/1.0",
            **(headers or {}),
        }
        self._client: Optional[httpx.AsyncClient] = None
        self._backoff = wait_exponential(
            multiplier=retry_delay,
            min=retry_delay,
            max=retry_delay * 8,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self.default_headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_url(self, endpoint: str) -> str:
        """空端点即基础URL本身（JSON-RPC / 代理接口）"""
        endpoint = endpoint.lstrip("/")
        return f"{self.base_url}/{endpoint}" if endpoint else self.base_url

    def _wait(self, retry_state: RetryCallState) -> float:
        backoff = self._backoff(retry_state)
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RetryableAPIError) and exc.retry_after:
            return max(backoff, min(exc.retry_after, self.timeout))
        return backoff

    async def _send(self, method: str, url: str, **kwargs) -> APIResponse:
        started = time.perf_counter()
        response = await self._get_client().request(method, url, **kwargs)
        elapsed_ms = (time.perf_counter() - started) * 1000

        data = None
        if "application/json" in response.headers.get("content-type", ""):
            try:
                data = response.json()
            except ValueError:
                data = None

        api_response = APIResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            data=data,
            raw_content=response.content,
            elapsed_ms=elapsed_ms,
            request_id=response.headers.get("x-request-id"),
        )
        if self.debug:
            logger.debug(
                "api_response",
                url=url,
                status_code=api_response.status_code,
                elapsed_ms=round(elapsed_ms, 2),
            )

        if api_response.status_code in RETRY_STATUS_CODES:
            raise RetryableAPIError(
                api_response,
                retry_after=_parse_retry_after(api_response.headers.get("retry-after")),
            )
        if api_response.is_error:
            raise error_for_response(api_response)
        return api_response

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> APIResponse:
        """
        发送请求

        Raises:
            APIError: 重试耗尽或不可重试的错误；超时与网络错误同样包装为 APIError
        """
        url = self._build_url(endpoint)
        if self.debug:
            safe_params = {k: v for k, v in (params or {}).items() if k.lower() not in _SECRET_PARAMS}
            logger.debug("api_request", method=method, url=url, params=safe_params)

        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait,
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError, RetryableAPIError)),
            before_sleep=_log_retry,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._send(method, url, params=params, json=json_data)
        except httpx.TimeoutException as exc:
            raise APIError(f"Request timeout after {self.timeout}s") from exc
        except httpx.NetworkError as exc:
            raise APIError(f"Network error: {exc}") from exc
        except RetryableAPIError as exc:
            raise error_for_response(exc.response) from exc
        except APIError:
            raise
        except httpx.HTTPError as exc:
            logger.error("api_request_unexpected_error", url=url, error=str(exc))
            raise APIError(f"Unexpected error: {exc}") from exc

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> APIResponse:
        return await self._request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json_data: Optional[Dict[str, Any]] = None) -> APIResponse:
        return await self._request("POST", endpoint, json_data=json_data)
