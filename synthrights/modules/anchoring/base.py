"""
Ledger anchoring contract.

Implementations never raise for ledger-side failures: they report
``success=False`` / ``verified=False`` with an ``error`` string and callers
must check the boolean.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of registering a metadata hash."""

    success: bool
    transaction_id: str | None = None
    block_number: int | None = None
    network_name: str | None = None
    registered_at: datetime | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> RegistrationResult:
        return cls(success=False, error=error)


@dataclass(frozen=True)
class ExactVerification:
    """Outcome of an exact hash lookup."""

    verified: bool
    timestamp: datetime | None = None
    transaction_id: str | None = None
    block_number: int | None = None
    network_name: str | None = None
    owner_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class FuzzyVerification:
    """Best similarity match among registered works; ``match_score`` is in [0, 1]."""

    matched: bool
    match_score: float = 0.0
    timestamp: datetime | None = None
    transaction_id: str | None = None
    network_name: str | None = None
    metadata_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class FuzzyDescriptor:
    """What a caller knows about content it wants to match."""

    title: str | None = None
    description: str | None = None
    content: str | None = None
    metadata_hash: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_request(
        cls,
        *,
        content: str | None,
        metadata: dict[str, Any] | None,
        metadata_hash: str | None = None,
    ) -> FuzzyDescriptor:
        metadata = dict(metadata or {})
        title = metadata.pop("title", None)
        description = metadata.pop("description", None)
        return cls(
            title=str(title) if title else None,
            description=str(description) if description else None,
            content=content or None,
            metadata_hash=metadata_hash,
            extra=metadata,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "metadataHash": self.metadata_hash,
            "metadata": self.extra,
        }


@runtime_checkable
class BlockchainAnchor(Protocol):
    """Register and look up metadata hashes on a ledger."""

    network_name: str

    async def register(
        self, work_id: str, metadata_hash: str, owner_id: str
    ) -> RegistrationResult: ...

    async def verify_exact(self, metadata_hash: str) -> ExactVerification: ...

    async def verify_fuzzy(self, descriptor: FuzzyDescriptor) -> FuzzyVerification: ...

    async def is_revoked(self, certificate_id: str) -> bool: ...
