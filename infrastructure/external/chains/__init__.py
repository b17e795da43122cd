"""
Multi-chain transaction verification.

ChainVerificationService implements the application ChainVerifier port: it
resolves a network alias to a chain client and turns every failure into a
``verified=False`` result. Nothing raised by a client escapes ``verify``.
"""
from __future__ import annotations

from typing import Dict, Optional

import httpx

from application.dtos.verification import NETWORK_ALIASES, TransactionVerification, normalize_network
from core.config import ChainSettings, settings
from core.logging_config import get_logger
from infrastructure.external.chains.base import ChainClient
from infrastructure.external.chains.bitcoin import BlockCypherClient
from infrastructure.external.chains.evm import EvmExplorerClient
from infrastructure.external.chains.solana import SolanaRpcClient


logger = get_logger(__name__)


class ChainVerificationService:
    """Dispatches verification to the client for the payment network."""

    def __init__(
        self,
        chain_settings: Optional[ChainSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = chain_settings or settings.chains
        self._transport = transport
        self._clients: Dict[str, ChainClient] = {}

    def _client_options(self) -> dict:
        return {
            "timeout": self._settings.timeout,
            "max_retries": self._settings.max_retries,
            "retry_delay": self._settings.retry_delay,
            "transport": self._transport,
        }

    def _build_client(self, network: str) -> ChainClient:
        s = self._settings
        opts = self._client_options()
        if network == "ethereum":
            return EvmExplorerClient("ethereum", s.etherscan_url, s.etherscan_api_key, **opts)
        if network == "bsc":
            return EvmExplorerClient("bsc", s.bscscan_url, s.bscscan_api_key, **opts)
        if network == "polygon":
            return EvmExplorerClient("polygon", s.polygonscan_url, s.polygonscan_api_key, **opts)
        if network == "bitcoin":
            return BlockCypherClient(s.blockcypher_url, s.blockcypher_token, **opts)
        if network == "solana":
            return SolanaRpcClient(s.solana_rpc_url, **opts)
        raise ValueError(f"Unsupported network: {network}")

    def get_client(self, network: str) -> ChainClient:
        client = self._clients.get(network)
        if client is None:
            client = self._build_client(network)
            self._clients[network] = client
        return client

    async def verify(self, tx_reference: str, network: str) -> TransactionVerification:
        canonical = normalize_network(network)
        if canonical is None:
            return TransactionVerification.failure(f"Unsupported network: {network}")

        try:
            result = await self.get_client(canonical).verify(tx_reference)
        except Exception as exc:
            logger.error(
                "chain_verification_error",
                network=canonical,
                tx_reference=tx_reference,
                error=str(exc),
            )
            return TransactionVerification.failure(str(exc))

        logger.info(
            "chain_verification_result",
            network=canonical,
            tx_reference=tx_reference,
            verified=result.verified,
            error=result.error,
        )
        return result

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


_verifier: Optional[ChainVerificationService] = None


def get_chain_verifier() -> ChainVerificationService:
    """进程级单例"""
    global _verifier
    if _verifier is None:
        _verifier = ChainVerificationService()
    return _verifier


__all__ = [
    "ChainVerificationService",
    "NETWORK_ALIASES",
    "normalize_network",
    "get_chain_verifier",
]
