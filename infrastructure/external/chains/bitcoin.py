"""
Bitcoin via BlockCypher: GET {base}/txs/{hash}[?token=...].
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from application.dtos.verification import TransactionVerification, is_valid_tx_reference
from infrastructure.external.api_clients.base import APIError
from infrastructure.external.chains.base import ChainClient, scale_amount

SATOSHI_EXPONENT = 8
AMOUNT_PLACES = 8


class BlockCypherClient(ChainClient):
    network = "bitcoin"

    def __init__(self, base_url: str, token: Optional[str] = None, **kwargs):
        super().__init__(base_url, **kwargs)
        self.token = token

    async def verify(self, tx_reference: str) -> TransactionVerification:
        if not is_valid_tx_reference(tx_reference, self.network):
            return TransactionVerification.failure("Invalid Bitcoin transaction hash")

        params = {"token": self.token} if self.token else None
        try:
            # the reference is a single path segment
            response = await self.get(f"txs/{quote(tx_reference, safe='')}", params=params)
        except APIError as exc:
            if exc.status_code is not None and 400 <= exc.status_code < 500 and exc.status_code != 429:
                return TransactionVerification.failure("Transaction not found on Bitcoin network")
            raise

        data = response.json() or {}
        confirmations = int(data.get("confirmations") or 0)
        if not data.get("confirmed"):
            return TransactionVerification(
                verified=False,
                error=f"Transaction unconfirmed ({confirmations} confirmations)",
                confirmations=confirmations,
            )

        return TransactionVerification(
            verified=True,
            amount=scale_amount(data.get("total") or 0, SATOSHI_EXPONENT, AMOUNT_PLACES),
            confirmations=confirmations,
            block_number=data.get("block_height"),
        )
