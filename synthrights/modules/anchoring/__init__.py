"""Ledger anchoring backends."""

from sqlalchemy.ext.asyncio import AsyncSession

from synthrights.core.config import Settings
from synthrights.modules.anchoring.base import (
    BlockchainAnchor,
    ExactVerification,
    FuzzyDescriptor,
    FuzzyVerification,
    RegistrationResult,
)
from synthrights.modules.anchoring.local import LocalLedgerAnchor
from synthrights.modules.anchoring.rpc import RpcBlockchainAnchor


def build_blockchain_anchor(session: AsyncSession, settings: Settings) -> BlockchainAnchor:
    """Select the anchor backend configured by ``ANCHOR_BACKEND``."""
    if settings.anchor_backend == "rpc":
        return RpcBlockchainAnchor(
            settings.anchor_rpc_url,
            network_name=settings.anchor_network_name,
            timeout=settings.anchor_timeout_seconds,
            api_key=settings.anchor_rpc_api_key,
        )
    return LocalLedgerAnchor(session, network_name=settings.anchor_network_name)


__all__ = [
    "BlockchainAnchor",
    "ExactVerification",
    "FuzzyDescriptor",
    "FuzzyVerification",
    "LocalLedgerAnchor",
    "RegistrationResult",
    "RpcBlockchainAnchor",
    "build_blockchain_anchor",
]
