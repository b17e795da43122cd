"""
Notifier that writes each notification as a structured log record.

Stands in for an inbox/email delivery service; the record carries the
recipient, a notification type and the rendered title/message.
"""
from __future__ import annotations

from typing import Any, Optional

from core.logging_config import get_logger


logger = get_logger("notifications")


class LoggingNotifier:

    async def _emit(self, user_id: int, type_: str, title: str, message: str, **metadata: Any) -> None:
        logger.info(
            "notification",
            user_id=user_id,
            type=type_,
            title=title,
            message=message,
            **metadata,
        )

    async def notify_order_created(self, seller_id: int, order_id: int, product_title: str) -> None:
        await self._emit(
            seller_id,
            "order_created",
            "New Order Received",
            f'You have a new order (#{order_id}) for "{product_title}".',
            order_id=order_id,
        )

    async def notify_payment_reported(self, seller_id: int, order_id: int, verified: bool) -> None:
        if verified:
            await self._emit(
                seller_id,
                "payment_verified",
                "Payment Verified",
                f"Payment for order #{order_id} has been verified on blockchain.",
                order_id=order_id,
                verified=True,
            )
        else:
            await self._emit(
                seller_id,
                "payment_reported",
                "Payment Reported",
                f"Buyer has reported payment for order #{order_id}. Please verify and confirm.",
                order_id=order_id,
                verified=False,
            )

    async def notify_payment_confirmed(self, buyer_id: int, order_id: int) -> None:
        await self._emit(
            buyer_id,
            "payment_confirmed",
            "Payment Confirmed",
            f"Your payment for order #{order_id} has been confirmed by the seller.",
            order_id=order_id,
        )

    async def notify_order_completed(self, buyer_id: int, order_id: int) -> None:
        await self._emit(
            buyer_id,
            "order_completed",
            "Order Completed",
            f"Order #{order_id} is complete. You can now access your delivery content.",
            order_id=order_id,
        )

    async def notify_order_cancelled(self, user_id: int, order_id: int) -> None:
        await self._emit(
            user_id,
            "order_cancelled",
            "Order Cancelled",
            f"Order #{order_id} has been cancelled.",
            order_id=order_id,
        )

    async def notify_refund_requested(self, seller_id: int, order_id: int) -> None:
        await self._emit(
            seller_id,
            "refund_requested",
            "Refund Requested",
            f"A refund has been requested for order #{order_id}.",
            order_id=order_id,
        )

    async def notify_refund_decision(
        self,
        buyer_id: int,
        order_id: int,
        approved: bool,
        admin_note: Optional[str] = None,
    ) -> None:
        decision = "approved" if approved else "rejected"
        message = f"Your refund request for order #{order_id} has been {decision}."
        if admin_note:
            message += f" Note: {admin_note}"
        await self._emit(
            buyer_id,
            f"refund_{decision}",
            f"Refund {decision.capitalize()}",
            message,
            order_id=order_id,
            approved=approved,
        )
