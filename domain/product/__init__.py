"""Product (catalog) domain exports."""
from .entity import Product, DeliveryType, ProductStatus
from .repository import ProductRepository

__all__ = ["Product", "DeliveryType", "ProductStatus", "ProductRepository"]
