"""
Solana via JSON-RPC getTransaction.

Transferred amount is the fee payer's balance delta minus the fee, in SOL.
"""
from __future__ import annotations

from application.dtos.verification import TransactionVerification
from infrastructure.external.chains.base import ChainClient, scale_amount

LAMPORT_EXPONENT = 9
AMOUNT_PLACES = 9


class SolanaRpcClient(ChainClient):
    network = "solana"

    async def verify(self, tx_reference: str) -> TransactionVerification:
        response = await self.post(
            "",
            json_data={
                "jsonrpc": "2.0",
                "id": 1,
                "method": "getTransaction",
                "params": [
                    tx_reference,
                    {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0},
                ],
            },
        )
        data = response.json() or {}
        result = data.get("result")
        if not result:
            return TransactionVerification.failure("Transaction not found on Solana")

        meta = result.get("meta") or {}
        if meta.get("err") is not None:
            return TransactionVerification.failure("Solana transaction failed")

        pre = meta.get("preBalances") or [0]
        post = meta.get("postBalances") or [0]
        lamports = int(pre[0]) - int(post[0]) - int(meta.get("fee") or 0)

        return TransactionVerification(
            verified=True,
            amount=scale_amount(lamports, LAMPORT_EXPONENT, AMOUNT_PLACES),
            confirmations=1 if result.get("slot") else 0,
        )
