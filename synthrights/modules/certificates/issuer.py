"""
Certificate issuance.

Each issuance runs strictly in order: ownership check, optional ledger
anchoring, metadata snapshot, signing, persistence, owner notification. The
certificate row is written only after signing succeeds, and nothing is
persisted when anchoring fails or times out.
"""

from __future__ import annotations

import asyncio
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from synthrights.core.config import Settings, get_settings
from synthrights.core.crypto.hashing import (
    Unanchored,
    anchor_state,
    compute_metadata_hash,
    registrable_attributes,
)
from synthrights.core.crypto.signing import CertificateSigner
from synthrights.core.errors import AnchoringFailedError, ForbiddenError, NotFoundError
from synthrights.core.logging import get_logger
from synthrights.db.models import Certificate, CertificateType, CreativeWork
from synthrights.modules.anchoring.base import BlockchainAnchor, RegistrationResult
from synthrights.modules.certificates.repository import CertificateRepository
from synthrights.modules.notifications import (
    NotificationService,
    build_certificate_issued_notification,
)

logger = get_logger(__name__)


def mint_certificate_id(now: datetime) -> str:
    """``cert-<epoch ms>-<16 hex>``; the random suffix carries 64 bits."""
    return f"cert-{int(now.timestamp() * 1000)}-{secrets.token_hex(8)}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


class CertificateIssuer:
    """Issue signed certificates for registered works."""

    def __init__(
        self,
        repository: CertificateRepository,
        anchor: BlockchainAnchor,
        signer: CertificateSigner,
        notifications: NotificationService,
        *,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._anchor = anchor
        self._signer = signer
        self._notifications = notifications
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))

    async def issue(
        self,
        work_id: str,
        caller_id: str,
        certificate_type: CertificateType = CertificateType.STANDARD,
        request_anchoring: bool = False,
    ) -> Certificate:
        work = await self._repository.get_work(work_id)
        if work is None:
            raise NotFoundError("Work not found", work_id=work_id)
        if work.owner_id != caller_id:
            raise ForbiddenError("You do not have permission to certify this work")

        if request_anchoring and isinstance(anchor_state(work), Unanchored):
            await self._anchor_work(work)
        elif not work.metadata_hash:
            await self._repository.store_metadata_hash(
                work, compute_metadata_hash(registrable_attributes(work))
            )

        work = await self._repository.get_work(work_id)
        if work is None:
            raise NotFoundError("Work not found", work_id=work_id)

        issued_at = self._clock()
        certificate_id = mint_certificate_id(issued_at)
        expires_at = (
            issued_at + timedelta(days=self._settings.standard_certificate_validity_days)
            if certificate_type == CertificateType.STANDARD
            else None
        )
        metadata = self.build_metadata(
            work,
            certificate_id=certificate_id,
            certificate_type=certificate_type,
            issued_at=issued_at,
            expires_at=expires_at,
        )

        signature = self._signer.sign(metadata)

        certificate = Certificate(
            id=certificate_id,
            work_id=work.id,
            owner_id=work.owner_id,
            certificate_type=certificate_type,
            metadata_json=metadata,
            signature=signature,
            signature_algorithm=self._signer.algorithm,
            signing_key_id=self._signer.key_id,
            public_url=f"{self._base_url}/certificate/{certificate_id}",
            is_revoked=False,
            expires_at=expires_at,
            created_at=issued_at,
        )
        await self._repository.add_certificate(certificate)

        await self._notifications.notify(
            work.owner_id,
            build_certificate_issued_notification(
                certificate_id=certificate_id,
                work_id=work.id,
                work_title=work.title,
                certificate_type=certificate_type.value,
            ),
        )
        logger.info(
            "certificate_issued",
            certificate_id=certificate_id,
            work_id=work.id,
            certificate_type=certificate_type.value,
            anchored=metadata.get("transactionId") is not None,
        )
        return certificate

    @property
    def _base_url(self) -> str:
        return self._settings.public_base_url.rstrip("/")

    async def _anchor_work(self, work: CreativeWork) -> None:
        metadata_hash = compute_metadata_hash(registrable_attributes(work))
        try:
            result: RegistrationResult = await asyncio.wait_for(
                self._anchor.register(work.id, metadata_hash, work.owner_id),
                timeout=self._settings.anchor_timeout_seconds,
            )
        except TimeoutError as exc:
            logger.warning(
                "certificate_anchoring_timeout",
                work_id=work.id,
                timeout_seconds=self._settings.anchor_timeout_seconds,
            )
            raise AnchoringFailedError("Failed to register on blockchain: timed out") from exc

        if not result.success:
            logger.warning("certificate_anchoring_failed", work_id=work.id, error=result.error)
            raise AnchoringFailedError(
                f"Failed to register on blockchain: {result.error or 'unknown error'}"
            )
        await self._repository.record_registration(work, metadata_hash, result)

    def build_metadata(
        self,
        work: CreativeWork,
        *,
        certificate_id: str,
        certificate_type: CertificateType,
        issued_at: datetime,
        expires_at: datetime | None,
    ) -> dict[str, Any]:
        """Canonical snapshot of the work at issuance; this is what gets signed."""
        record = work.blockchain_record
        owner = work.owner
        metadata: dict[str, Any] = {
            "version": self._settings.certificate_version,
            "certificateId": certificate_id,
            "certificateType": certificate_type.value,
            "workId": work.id,
            "ownerId": work.owner_id,
            "ownerName": owner.display_name if owner is not None else "Unknown",
            "title": work.title,
            "type": _enum_value(work.work_type),
            "registrationType": "blockchain" if record is not None else "standard",
            "metadataHash": work.metadata_hash,
            "registeredAt": _iso(record.registered_at if record else work.created_at),
            "aiTrainingStatus": "opted_out" if work.ai_training_opt_out else "allowed",
            "verificationUrl": f"{self._base_url}/verify/{work.metadata_hash}",
            "issuedAt": _iso(issued_at),
            "expiresAt": _iso(expires_at),
        }
        if record is not None:
            metadata["transactionId"] = record.transaction_id
            metadata["blockNumber"] = record.block_number
            metadata["networkName"] = record.network_name
        return metadata
