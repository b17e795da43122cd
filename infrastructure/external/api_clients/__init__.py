"""
API客户端模块

区块浏览器 / RPC 客户端的公共基类
"""
from .base import BaseAPIClient, APIResponse, APIError, NotFoundError

__all__ = [
    "BaseAPIClient",
    "APIResponse",
    "APIError",
    "NotFoundError",
]
