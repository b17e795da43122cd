"""
Refund domain events.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class RefundEvent:
    order_id: int
    refund_id: Optional[int] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class RefundRequested(RefundEvent):
    seller_id: int = 0


@dataclass
class RefundDecided(RefundEvent):
    buyer_id: int = 0
    approved: bool = False
    admin_note: Optional[str] = None
    # False when a rejection found the order no longer in REFUND_REQUESTED
    order_restored: bool = True
