"""
Domain event -> Notifier fan-out.

Runs after the unit of work has committed. Delivery is best-effort: a failing
notifier is logged and never turns a committed transition into an error.
"""
from __future__ import annotations

from typing import Iterable, Optional

from application.ports.notifier import Notifier
from core.logging_config import get_logger
from domain.order.events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    PaymentConfirmed,
    PaymentReported,
)
from domain.refund.events import RefundDecided, RefundRequested


logger = get_logger(__name__)


class NotificationDispatcher:
    def __init__(self, notifier: Optional[Notifier]):
        self._notifier = notifier

    async def dispatch(self, events: Iterable) -> None:
        if self._notifier is None:
            return
        for event in events:
            try:
                await self._dispatch_one(event)
            except Exception as exc:
                logger.warning(
                    "notification_failed",
                    event_type=type(event).__name__,
                    order_id=getattr(event, "order_id", None),
                    error=str(exc),
                )

    async def _dispatch_one(self, event) -> None:
        n = self._notifier
        if isinstance(event, OrderCreated):
            await n.notify_order_created(event.seller_id, event.order_id, event.product_title)
        elif isinstance(event, PaymentReported):
            await n.notify_payment_reported(event.seller_id, event.order_id, event.verified)
        elif isinstance(event, PaymentConfirmed):
            await n.notify_payment_confirmed(event.buyer_id, event.order_id)
        elif isinstance(event, OrderCompleted):
            await n.notify_order_completed(event.buyer_id, event.order_id)
        elif isinstance(event, OrderCancelled):
            await n.notify_order_cancelled(event.recipient_id, event.order_id)
        elif isinstance(event, RefundRequested):
            await n.notify_refund_requested(event.seller_id, event.order_id)
        elif isinstance(event, RefundDecided):
            await n.notify_refund_decision(event.buyer_id, event.order_id, event.approved, event.admin_note)
        else:
            logger.debug("notification_skipped", event_type=type(event).__name__)
