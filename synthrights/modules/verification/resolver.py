"""
Public verification of metadata hashes and certificates.

Lookups go to the local registry first and fall back to the ledger. An
unknown hash is a normal ``verified: False`` answer, never an exception.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from synthrights.core.config import Settings, get_settings
from synthrights.core.crypto.signing import CertificateSigner
from synthrights.core.errors import SigningFailedError, ValidationError
from synthrights.core.logging import get_logger
from synthrights.db.models import Certificate
from synthrights.modules.anchoring.base import BlockchainAnchor, FuzzyDescriptor
from synthrights.modules.certificates.repository import CertificateRepository
from synthrights.modules.verification.presenters import (
    blockchain_view,
    certificate_summary,
    work_view,
)

logger = get_logger(__name__)

EXTERNAL_WORK_ID = "external"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def signed_metadata(certificate: Certificate) -> dict[str, Any]:
    """The metadata exactly as signed, without the revocation entry added later."""
    return {k: v for k, v in (certificate.metadata_json or {}).items() if k != "revocation"}


class VerificationResolver:
    """Resolve hashes and certificate ids to verification results."""

    def __init__(
        self,
        repository: CertificateRepository,
        anchor: BlockchainAnchor,
        signer: CertificateSigner | None = None,
        *,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._anchor = anchor
        self._signer = signer
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))

    async def _is_revoked(self, certificate: Certificate) -> bool:
        if certificate.is_revoked:
            return True
        return await self._anchor.is_revoked(certificate.id)

    async def verify_hash(self, metadata_hash: str) -> dict[str, Any]:
        work = await self._repository.get_work_by_hash(metadata_hash)
        if work is not None:
            certificate = await self._repository.latest_certificate_for_work(work.id)
            certificate_view = None
            if certificate is not None:
                certificate_view = certificate_summary(
                    certificate, revoked=await self._is_revoked(certificate)
                )
            logger.info("hash_verified_locally", work_id=work.id)
            return {
                "success": True,
                "verified": True,
                "source": "registry",
                "workId": work.id,
                "work": work_view(work),
                "blockchain": blockchain_view(work),
                "certificate": certificate_view,
            }

        ledger = await self._anchor.verify_exact(metadata_hash)
        if ledger.verified:
            logger.info("hash_verified_on_ledger", metadata_hash=metadata_hash)
            return {
                "success": True,
                "verified": True,
                "source": "ledger",
                "workId": EXTERNAL_WORK_ID,
                "metadataHash": metadata_hash,
                "blockchain": {
                    "transactionId": ledger.transaction_id,
                    "blockNumber": ledger.block_number,
                    "networkName": ledger.network_name,
                    "registeredAt": _iso(ledger.timestamp),
                },
                "message": "Content is registered on the ledger but not in this registry",
            }

        return {
            "success": False,
            "verified": False,
            "metadataHash": metadata_hash,
            "message": "No registration found for this hash",
        }

    async def verify_fuzzy(
        self,
        metadata_hash: str | None,
        *,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
        threshold: float | None = None,
    ) -> dict[str, Any]:
        if not content and not metadata:
            raise ValidationError("Content or metadata required for fuzzy verification")
        if threshold is None:
            threshold = self._settings.fuzzy_match_threshold
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError("Threshold must be between 0 and 1")

        descriptor = FuzzyDescriptor.from_request(
            content=content, metadata=metadata, metadata_hash=metadata_hash
        )
        match = await self._anchor.verify_fuzzy(descriptor)
        score = match.match_score if match.matched else 0.0
        verified = match.matched and score >= threshold
        return {
            "success": True,
            "verified": verified,
            "matchScore": score,
            "matchPercentage": round(score * 100, 2),
            "threshold": threshold,
            "registeredAt": _iso(match.timestamp) if verified else None,
            "blockchainInfo": (
                {"transactionId": match.transaction_id, "networkName": match.network_name}
                if verified
                else None
            ),
            "message": None if match.matched else match.error,
        }

    async def verify_certificate(self, certificate_id: str) -> dict[str, Any]:
        certificate = await self._repository.get_certificate(certificate_id)
        if certificate is None:
            return {
                "success": False,
                "verified": False,
                "certificateId": certificate_id,
                "message": "Certificate not found",
            }

        if await self._is_revoked(certificate):
            revocation = (certificate.metadata_json or {}).get("revocation") or {}
            return {
                "success": True,
                "verified": False,
                "revoked": True,
                "certificateId": certificate.id,
                "revokedAt": _iso(certificate.revoked_at) or revocation.get("revokedAt"),
                "message": "This certificate has been revoked",
            }

        if certificate.expires_at is not None and certificate.expires_at <= self._clock():
            return {
                "success": True,
                "verified": False,
                "expired": True,
                "certificateId": certificate.id,
                "expiresAt": _iso(certificate.expires_at),
                "message": "This certificate has expired",
            }

        signature_valid = self._check_signature(certificate)
        work = certificate.work
        return {
            "success": True,
            "verified": signature_valid is not False,
            "revoked": False,
            "expired": False,
            "signatureValid": signature_valid,
            "certificate": certificate_summary(certificate, revoked=False),
            "metadataHash": (certificate.metadata_json or {}).get("metadataHash"),
            "work": work_view(work) if work is not None else None,
            "blockchain": blockchain_view(work) if work is not None else None,
        }

    def _check_signature(self, certificate: Certificate) -> bool | None:
        """``None`` when this deployment cannot check signatures."""
        if self._signer is None:
            return None
        try:
            return self._signer.verify(signed_metadata(certificate), certificate.signature)
        except SigningFailedError:
            logger.warning("certificate_signature_check_unavailable", certificate_id=certificate.id)
            return None
