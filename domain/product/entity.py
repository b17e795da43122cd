"""
商品实体 - catalog entry consulted (never mutated) by the order workflow.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class ProductStatus(str, Enum):
    """商品审核状态"""
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    OFF_SHELF = "off_shelf"


class DeliveryType(str, Enum):
    """交付方式"""
    AUTO = "auto_hosted"  # key/link released as soon as payment is confirmed
    MANUAL = "manual"     # seller hands over content personally


@dataclass
class Product:
    id: Optional[int]
    seller_id: int
    title: str
    price_usd: Decimal
    delivery_type: DeliveryType
    delivery_content: Optional[str] = None
    status: ProductStatus = ProductStatus.DRAFT
    created_at: Optional[datetime] = None

    @property
    def is_auto_delivery(self) -> bool:
        return self.delivery_type == DeliveryType.AUTO
