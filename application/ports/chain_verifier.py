"""
Chain verifier port (application/ports).

The order service asks this protocol whether a claimed payment transaction
exists and succeeded. Implementations live in infrastructure/external/chains
and must never raise: every failure is returned as ``verified=False``.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.verification import TransactionVerification


@runtime_checkable
class ChainVerifier(Protocol):
    async def verify(self, tx_reference: str, network: str) -> TransactionVerification: ...
