"""Catalog lookup abstraction consumed by the order workflow."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .entity import Product


class ProductRepository(ABC):
    """Read-only view of the catalog."""

    @abstractmethod
    async def get_by_id(self, product_id: int) -> Optional[Product]:
        ...
