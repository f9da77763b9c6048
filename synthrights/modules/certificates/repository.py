"""Data access for works, blockchain records and certificates."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.orm import selectinload

from synthrights.db.models import (
    BlockchainRecord,
    Certificate,
    CreativeWork,
    RegistrationStatus,
)
from synthrights.modules.anchoring.base import RegistrationResult


class CertificateRepository:
    """All SQL used by the certificate services goes through here."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def savepoint(self) -> AsyncSessionTransaction:
        """Nested transaction so one batch item can roll back alone."""
        return self._session.begin_nested()

    # -- works ---------------------------------------------------------------

    async def get_work(self, work_id: str) -> CreativeWork | None:
        return await self._session.scalar(
            select(CreativeWork)
            .where(CreativeWork.id == work_id)
            .options(
                selectinload(CreativeWork.owner),
                selectinload(CreativeWork.blockchain_record),
            )
            .execution_options(populate_existing=True)
        )

    async def get_work_by_hash(self, metadata_hash: str) -> CreativeWork | None:
        return await self._session.scalar(
            select(CreativeWork)
            .where(CreativeWork.metadata_hash == metadata_hash)
            .options(
                selectinload(CreativeWork.owner),
                selectinload(CreativeWork.blockchain_record),
            )
            .order_by(CreativeWork.created_at.asc())
            .limit(1)
        )

    async def lock_owned_works(
        self, owner_id: str, work_ids: Sequence[str]
    ) -> list[CreativeWork]:
        """Load the caller's works among ``work_ids`` and lock them for this transaction.

        Rows are locked in id order so concurrent batches cannot deadlock.
        """
        result = await self._session.scalars(
            select(CreativeWork)
            .where(CreativeWork.id.in_(list(work_ids)), CreativeWork.owner_id == owner_id)
            .order_by(CreativeWork.id)
            .with_for_update()
        )
        return list(result.all())

    async def certificate_counts(self, work_ids: Sequence[str]) -> dict[str, int]:
        if not work_ids:
            return {}
        rows = await self._session.execute(
            select(Certificate.work_id, func.count(Certificate.id))
            .where(Certificate.work_id.in_(list(work_ids)))
            .group_by(Certificate.work_id)
        )
        return {work_id: int(total) for work_id, total in rows.all()}

    async def record_registration(
        self, work: CreativeWork, metadata_hash: str, result: RegistrationResult
    ) -> BlockchainRecord:
        record = BlockchainRecord(
            work_id=work.id,
            transaction_id=result.transaction_id,
            block_number=result.block_number,
            network_name=result.network_name,
            registered_at=result.registered_at,
            verified=True,
        )
        work.metadata_hash = metadata_hash
        work.registration_status = RegistrationStatus.REGISTERED
        self._session.add(record)
        await self._session.flush()
        return record

    async def store_metadata_hash(self, work: CreativeWork, metadata_hash: str) -> None:
        work.metadata_hash = metadata_hash
        await self._session.flush()

    # -- certificates --------------------------------------------------------

    async def add_certificate(self, certificate: Certificate) -> Certificate:
        self._session.add(certificate)
        await self._session.flush()
        return certificate

    async def save(self) -> None:
        await self._session.flush()

    async def get_certificate(self, certificate_id: str) -> Certificate | None:
        return await self._session.scalar(
            select(Certificate)
            .where(Certificate.id == certificate_id)
            .options(
                selectinload(Certificate.owner),
                selectinload(Certificate.work).selectinload(CreativeWork.owner),
                selectinload(Certificate.work).selectinload(CreativeWork.blockchain_record),
            )
        )

    async def latest_certificate_for_work(self, work_id: str) -> Certificate | None:
        return await self._session.scalar(
            select(Certificate)
            .where(Certificate.work_id == work_id)
            .order_by(Certificate.created_at.desc())
            .limit(1)
        )

    async def list_certificates(
        self,
        owner_id: str,
        *,
        work_id: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Certificate], int]:
        filters: list[Any] = [Certificate.owner_id == owner_id]
        if work_id:
            filters.append(Certificate.work_id == work_id)

        total = await self._session.scalar(
            select(func.count()).select_from(Certificate).where(*filters)
        )
        result = await self._session.scalars(
            select(Certificate)
            .where(*filters)
            .options(selectinload(Certificate.work))
            .order_by(Certificate.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.all()), int(total or 0)
