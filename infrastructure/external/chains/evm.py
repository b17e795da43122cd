"""
EVM chains (Ethereum / BSC / Polygon) via Etherscan-compatible proxy API.

Two calls per verification: eth_getTransactionByHash for value/from/to and
eth_getTransactionReceipt for the execution status.
"""
from __future__ import annotations

from typing import Any, Optional

from application.dtos.verification import TransactionVerification
from infrastructure.external.chains.base import ChainClient, scale_amount

WEI_EXPONENT = 18
AMOUNT_PLACES = 8


def _hex_to_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    return int(value, 16)


class EvmExplorerClient(ChainClient):
    def __init__(self, network: str, base_url: str, api_key: Optional[str], **kwargs):
        super().__init__(base_url, **kwargs)
        self.network = network
        self.api_key = api_key

    async def _proxy(self, action: str, tx_hash: str) -> Any:
        response = await self.get(
            "",
            params={
                "module": "proxy",
                "action": action,
                "txhash": tx_hash,
                "apikey": self.api_key,
            },
        )
        data = response.json()
        return data.get("result") if isinstance(data, dict) else None

    async def verify(self, tx_reference: str) -> TransactionVerification:
        if not self.api_key:
            return TransactionVerification.failure("Blockchain API key not configured")

        tx = await self._proxy("eth_getTransactionByHash", tx_reference)
        if isinstance(tx, str):
            # explorer-level error, e.g. "Invalid API Key"
            return TransactionVerification.failure(f"Explorer error: {tx}")
        if not tx:
            return TransactionVerification.failure("Transaction not found on blockchain")

        receipt = await self._proxy("eth_getTransactionReceipt", tx_reference)
        if not isinstance(receipt, dict) or receipt.get("status") != "0x1":
            return TransactionVerification(
                verified=False,
                error="Transaction failed or is still pending",
                from_address=tx.get("from"),
                to=tx.get("to"),
            )

        return TransactionVerification(
            verified=True,
            amount=scale_amount(_hex_to_int(tx.get("value")) or 0, WEI_EXPONENT, AMOUNT_PLACES),
            from_address=tx.get("from"),
            to=tx.get("to"),
            block_number=_hex_to_int(tx.get("blockNumber")),
            # a mined receipt leaves the depth to the caller (needs current head)
            confirmations=None if receipt.get("blockNumber") else 0,
        )
