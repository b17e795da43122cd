"""
Notification sink port (application/ports).

Delivery (in-app inbox, email, websocket push) is owned by whatever implements
this protocol. Calls are made after the order/refund transaction commits.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Notifier(Protocol):
    async def notify_order_created(self, seller_id: int, order_id: int, product_title: str) -> None: ...

    async def notify_payment_reported(self, seller_id: int, order_id: int, verified: bool) -> None: ...

    async def notify_payment_confirmed(self, buyer_id: int, order_id: int) -> None: ...

    async def notify_order_completed(self, buyer_id: int, order_id: int) -> None: ...

    async def notify_order_cancelled(self, user_id: int, order_id: int) -> None: ...

    async def notify_refund_requested(self, seller_id: int, order_id: int) -> None: ...

    async def notify_refund_decision(
        self,
        buyer_id: int,
        order_id: int,
        approved: bool,
        admin_note: Optional[str] = None,
    ) -> None: ...
