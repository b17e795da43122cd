"""
Order domain events.

Dataclass events record order lifecycle facts; the application layer turns
them into notifications after the transaction commits.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class OrderEvent:
    order_id: int
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class OrderCreated(OrderEvent):
    seller_id: int = 0
    product_title: str = ""


@dataclass
class PaymentReported(OrderEvent):
    seller_id: int = 0
    verified: bool = False


@dataclass
class PaymentConfirmed(OrderEvent):
    buyer_id: int = 0


@dataclass
class OrderCompleted(OrderEvent):
    buyer_id: int = 0


@dataclass
class OrderCancelled(OrderEvent):
    # the counter-party of whoever cancelled
    recipient_id: int = 0
    cancelled_by: Optional[int] = None
