"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。

Taxonomy: not-found / forbidden / invalid-state. Every guard violation in the
order and refund workflows raises one of these; none is silently ignored.
"""
from __future__ import annotations

from typing import Optional

from shared.codes import BusinessCode
from shared.codes.order_codes import OrderCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class NotFoundException(BusinessException):
    """Base for missing order/product/refund."""


class ForbiddenException(BusinessException):
    """Caller is not a party authorised for the operation."""


class InvalidStateException(BusinessException):
    """Attempted transition from a status that does not permit it."""


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


# ---- orders ----

class OrderNotFoundException(NotFoundException):
    def __init__(self, order_id: int):
        super().__init__(
            code=OrderCode.ORDER_NOT_FOUND,
            message="Order not found",
            error_type="OrderNotFound",
            details={"order_id": order_id},
        )


class ProductNotFoundException(NotFoundException):
    def __init__(self, product_id: int):
        super().__init__(
            code=OrderCode.PRODUCT_NOT_FOUND,
            message="Product not found",
            error_type="ProductNotFound",
            details={"product_id": product_id},
        )


class OrderAccessForbiddenException(ForbiddenException):
    def __init__(self, order_id: int, user_id: int, message: str = "Not authorized"):
        super().__init__(
            code=OrderCode.ORDER_FORBIDDEN,
            message=message,
            error_type="OrderAccessForbidden",
            details={"order_id": order_id, "user_id": user_id},
        )


class InvalidOrderStateException(InvalidStateException):
    def __init__(self, order_id: Optional[int], status: str, message: str):
        super().__init__(
            code=OrderCode.ORDER_INVALID_STATE,
            message=message,
            error_type="InvalidOrderState",
            details={"order_id": order_id, "status": status},
            field="status",
        )


class OrderStateConflictException(InvalidStateException):
    """The order's status changed between read and write (lost compare-and-swap)."""

    def __init__(self, order_id: int, expected_status: str):
        super().__init__(
            code=OrderCode.ORDER_STATE_CONFLICT,
            message="Order status was changed by another request",
            error_type="OrderStateConflict",
            details={"order_id": order_id, "expected_status": expected_status},
            field="status",
        )


class SelfPurchaseException(InvalidStateException):
    def __init__(self, product_id: int):
        super().__init__(
            code=OrderCode.SELF_PURCHASE,
            message="Cannot buy your own product",
            error_type="SelfPurchase",
            details={"product_id": product_id},
        )


# ---- refunds ----

class RefundNotFoundException(NotFoundException):
    def __init__(self, refund_id: int):
        super().__init__(
            code=OrderCode.REFUND_NOT_FOUND,
            message="Refund not found",
            error_type="RefundNotFound",
            details={"refund_id": refund_id},
        )


class RefundAccessForbiddenException(ForbiddenException):
    def __init__(self, message: str, *, refund_id: Optional[int] = None, order_id: Optional[int] = None):
        details = {}
        if refund_id is not None:
            details["refund_id"] = refund_id
        if order_id is not None:
            details["order_id"] = order_id
        super().__init__(
            code=OrderCode.REFUND_FORBIDDEN,
            message=message,
            error_type="RefundAccessForbidden",
            details=details or None,
        )


class InvalidRefundStateException(InvalidStateException):
    def __init__(self, refund_id: Optional[int], status: str, message: str):
        super().__init__(
            code=OrderCode.REFUND_INVALID_STATE,
            message=message,
            error_type="InvalidRefundState",
            details={"refund_id": refund_id, "status": status},
            field="status",
        )


class RefundAlreadyPendingException(InvalidStateException):
    def __init__(self, order_id: int):
        super().__init__(
            code=OrderCode.REFUND_ALREADY_PENDING,
            message="A refund request is already pending for this order",
            error_type="RefundAlreadyPending",
            details={"order_id": order_id},
        )
