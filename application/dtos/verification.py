"""
Chain verification result (Pydantic v2).

Field aliases keep the stored ``verification_details`` document in the shape
explorers and clients already read: ``from`` and ``blockNumber``.

Network aliases and transaction reference formats live here as well, so the
request DTOs and the chain clients agree on what a valid reference is.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


NETWORK_ALIASES: Dict[str, str] = {
    "ethereum": "ethereum",
    "eth": "ethereum",
    "bsc": "bsc",
    "binance": "bsc",
    "polygon": "polygon",
    "matic": "polygon",
    "bitcoin": "bitcoin",
    "btc": "bitcoin",
    "solana": "solana",
    "sol": "solana",
}

_EVM_TX = re.compile(r"0x[0-9a-fA-F]{64}")

# canonical network -> reference format
TX_REFERENCE_PATTERNS: Dict[str, re.Pattern] = {
    "ethereum": _EVM_TX,
    "bsc": _EVM_TX,
    "polygon": _EVM_TX,
    "bitcoin": re.compile(r"[0-9a-fA-F]{64}"),
    # base58 signature
    "solana": re.compile(r"[1-9A-HJ-NP-Za-km-z]{32,88}"),
}

# unknown or missing network: anything that is safe to carry around
_GENERIC_TX = re.compile(r"[0-9A-Za-z]{1,128}")


def normalize_network(network: Optional[str]) -> Optional[str]:
    if not network:
        return None
    return NETWORK_ALIASES.get(network.strip().lower())


def is_valid_tx_reference(tx_reference: str, network: Optional[str] = None) -> bool:
    """Format check only; whether the transaction exists is up to the chain."""
    pattern = TX_REFERENCE_PATTERNS.get(normalize_network(network) or "", _GENERIC_TX)
    return pattern.fullmatch(tx_reference) is not None


class TransactionVerification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    verified: bool = False
    amount: Optional[str] = None
    from_address: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    confirmations: Optional[int] = None
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "TransactionVerification":
        return cls(verified=False, error=error)

    def to_details(self) -> dict[str, Any]:
        """Serialized form persisted on the order."""
        return self.model_dump(by_alias=True, exclude_none=True)
