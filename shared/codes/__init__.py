"""
业务状态码（各层共用）

通用码放在 BusinessCode；订单/退款专用码见 shared.codes.order_codes。
响应体里的 code 字段即这些整数值，0 表示成功。
"""
from enum import IntEnum

from .order_codes import OrderCode


class BusinessCode(IntEnum):
    SUCCESS = 0

    # 请求参数 (1xxxx)
    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003

    # 通用业务 (2xxxx)，订单 201xx / 退款 202xx 见 OrderCode
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006
    INVALID_STATE = 20007

    # 调用方身份 (3xxxx)
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # 系统 (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003

    # 限流 (5xxxx)
    TOO_MANY_REQUESTS = 50001


__all__ = ["BusinessCode", "OrderCode"]
