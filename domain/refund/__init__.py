"""Refund domain exports."""
from .entity import Refund, RefundStatus
from .repository import RefundRepository

__all__ = ["Refund", "RefundStatus", "RefundRepository"]
