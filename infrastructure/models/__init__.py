"""Infrastructure models package exports."""
from .base import Base, metadata
from .order import OrderModel, RefundModel
from .product import ProductModel

__all__ = [
    "Base",
    "metadata",
    "OrderModel",
    "RefundModel",
    "ProductModel",
]
