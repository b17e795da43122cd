"""
Order/refund specific business codes (2xxxx range, 201xx for orders, 202xx for refunds).
"""
from __future__ import annotations

from enum import IntEnum


class OrderCode(IntEnum):
    ORDER_NOT_FOUND = 20101
    PRODUCT_NOT_FOUND = 20102
    ORDER_FORBIDDEN = 20103
    ORDER_INVALID_STATE = 20104
    ORDER_STATE_CONFLICT = 20105
    SELF_PURCHASE = 20106

    REFUND_NOT_FOUND = 20201
    REFUND_FORBIDDEN = 20202
    REFUND_INVALID_STATE = 20203
    REFUND_ALREADY_PENDING = 20204


# Code -> taxonomy bucket, used by the HTTP layer to pick a status code
NOT_FOUND_CODES = frozenset({
    OrderCode.ORDER_NOT_FOUND,
    OrderCode.PRODUCT_NOT_FOUND,
    OrderCode.REFUND_NOT_FOUND,
})

FORBIDDEN_CODES = frozenset({
    OrderCode.ORDER_FORBIDDEN,
    OrderCode.REFUND_FORBIDDEN,
})

INVALID_STATE_CODES = frozenset({
    OrderCode.ORDER_INVALID_STATE,
    OrderCode.ORDER_STATE_CONFLICT,
    OrderCode.REFUND_INVALID_STATE,
    OrderCode.REFUND_ALREADY_PENDING,
})
