"""
Platform-hosted ledger index backed by PostgreSQL.

Used when no external registry node is configured. Transaction ids are
SHA-256 digests over the registration tuple. Block numbers index this
service's own ledger and are allocated under a PostgreSQL transaction
advisory lock.
"""

from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from difflib import SequenceMatcher

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from synthrights.core.logging import get_logger
from synthrights.db.models import BlockchainRecord, Certificate, CreativeWork
from synthrights.modules.anchoring.base import (
    ExactVerification,
    FuzzyDescriptor,
    FuzzyVerification,
    RegistrationResult,
)

logger = get_logger(__name__)

FUZZY_CANDIDATE_LIMIT = 500
BLOCK_ALLOCATION_LOCK_KEY = "synthrights:local-ledger:block"


def _ratio(left: str | None, right: str | None) -> float | None:
    if not left or not right:
        return None
    return SequenceMatcher(None, left.strip().lower(), right.strip().lower()).ratio()


def similarity_score(descriptor: FuzzyDescriptor, work: CreativeWork) -> float:
    """Average of the available title, description and content similarities."""
    if descriptor.metadata_hash and descriptor.metadata_hash == work.metadata_hash:
        return 1.0

    scores: list[float] = []
    for score in (
        _ratio(descriptor.title, work.title),
        _ratio(descriptor.description, work.description),
    ):
        if score is not None:
            scores.append(score)
    if descriptor.content:
        content_scores = [
            s
            for s in (
                _ratio(descriptor.content, work.description),
                _ratio(descriptor.content, work.title),
            )
            if s is not None
        ]
        if content_scores:
            scores.append(max(content_scores))
    if not scores:
        return 0.0
    return round(sum(scores) / len(scores), 4)


class LocalLedgerAnchor:
    """Ledger anchor that keeps registrations in the service database."""

    def __init__(self, session: AsyncSession, *, network_name: str) -> None:
        self._session = session
        self.network_name = network_name

    async def _lock_block_allocation(self) -> None:
        bind = self._session.get_bind()
        if bind is not None and bind.dialect.name == "postgresql":
            await self._session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
                {"lock_key": BLOCK_ALLOCATION_LOCK_KEY},
            )

    async def register(self, work_id: str, metadata_hash: str, owner_id: str) -> RegistrationResult:
        """
        Allocate the next local block for a registration.

        Block numbers are positions in this service's own index, not chain
        heights. The allocation lock is held until the caller's transaction
        ends, so concurrent issuers queue behind it and each committed record
        gets a distinct number one above the highest committed so far.
        """
        registered_at = datetime.now(UTC)
        try:
            await self._lock_block_allocation()
            last_block = await self._session.scalar(select(func.max(BlockchainRecord.block_number)))
        except SQLAlchemyError as exc:
            logger.warning("local_ledger_register_failed", work_id=work_id, exc_info=True)
            return RegistrationResult.failed(str(exc))

        digest = hashlib.sha256(
            f"{work_id}:{metadata_hash}:{owner_id}:{registered_at.isoformat()}".encode()
        ).hexdigest()
        return RegistrationResult(
            success=True,
            transaction_id=f"0x{digest}",
            block_number=(last_block or 0) + 1,
            network_name=self.network_name,
            registered_at=registered_at,
        )

    async def verify_exact(self, metadata_hash: str) -> ExactVerification:
        try:
            row = (
                await self._session.execute(
                    select(BlockchainRecord, CreativeWork.owner_id)
                    .join(CreativeWork, CreativeWork.id == BlockchainRecord.work_id)
                    .where(CreativeWork.metadata_hash == metadata_hash)
                    .limit(1)
                )
            ).first()
        except SQLAlchemyError as exc:
            logger.warning("local_ledger_lookup_failed", exc_info=True)
            return ExactVerification(verified=False, error=str(exc))

        if row is None:
            return ExactVerification(verified=False, error="Hash not registered")
        record, owner_id = row
        return ExactVerification(
            verified=True,
            timestamp=record.registered_at,
            transaction_id=record.transaction_id,
            block_number=record.block_number,
            network_name=record.network_name,
            owner_id=owner_id,
        )

    async def verify_fuzzy(self, descriptor: FuzzyDescriptor) -> FuzzyVerification:
        try:
            works = (
                await self._session.scalars(
                    select(CreativeWork)
                    .join(CreativeWork.blockchain_record)
                    .where(CreativeWork.metadata_hash.is_not(None))
                    .options(contains_eager(CreativeWork.blockchain_record))
                    .order_by(CreativeWork.created_at.desc())
                    .limit(FUZZY_CANDIDATE_LIMIT)
                )
            ).all()
        except SQLAlchemyError as exc:
            logger.warning("local_ledger_fuzzy_failed", exc_info=True)
            return FuzzyVerification(matched=False, error=str(exc))

        best: CreativeWork | None = None
        best_score = 0.0
        for work in works:
            if work.blockchain_record is None:
                continue
            score = similarity_score(descriptor, work)
            if score > best_score:
                best, best_score = work, score

        if best is None:
            return FuzzyVerification(matched=False, error="No similar works found on the ledger")

        record = best.blockchain_record
        return FuzzyVerification(
            matched=True,
            match_score=best_score,
            timestamp=record.registered_at,
            transaction_id=record.transaction_id,
            network_name=record.network_name,
            metadata_hash=best.metadata_hash,
        )

    async def is_revoked(self, certificate_id: str) -> bool:
        revoked = await self._session.scalar(
            select(Certificate.is_revoked).where(Certificate.id == certificate_id)
        )
        return bool(revoked)
