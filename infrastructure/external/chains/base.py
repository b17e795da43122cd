"""
Chain client base: an API client that answers "did this transaction happen".
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Union

from application.dtos.verification import TransactionVerification
from infrastructure.external.api_clients.base import BaseAPIClient


def scale_amount(raw: Union[int, str], base_exponent: int, places: int) -> str:
    """Integer base units -> fixed-point string, e.g. wei -> ETH with 8 places."""
    with localcontext() as ctx:
        ctx.prec = 80
        value = Decimal(int(raw)) / (Decimal(10) ** base_exponent)
        quantized = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
        # str() switches to exponent form below 1e-6 ("1E-8")
        return format(quantized, "f")


class ChainClient(BaseAPIClient, ABC):
    network: str = ""

    @abstractmethod
    async def verify(self, tx_reference: str) -> TransactionVerification:
        """Look the transaction up; transport failures may raise APIError."""
