"""Certificate revocation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from synthrights.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from synthrights.core.logging import get_logger
from synthrights.db.models import Certificate
from synthrights.modules.certificates.repository import CertificateRepository
from synthrights.modules.notifications import (
    NotificationService,
    build_certificate_revoked_notification,
)

logger = get_logger(__name__)


class CertificateRevoker:
    """
    Revoke certificates.

    Revocation is permanent and additive: the signature and the signed
    metadata stay in place and a ``revocation`` entry is merged alongside.
    """

    def __init__(
        self,
        repository: CertificateRepository,
        notifications: NotificationService,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._notifications = notifications
        self._clock = clock or (lambda: datetime.now(UTC))

    async def revoke(self, certificate_id: str, caller_id: str, reason: str | None) -> Certificate:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Reason for revocation is required")

        certificate = await self._repository.get_certificate(certificate_id)
        if certificate is None:
            raise NotFoundError("Certificate not found", certificate_id=certificate_id)

        work = certificate.work
        if caller_id not in (certificate.owner_id, work.owner_id if work else None):
            raise ForbiddenError("You do not have permission to revoke this certificate")
        if certificate.is_revoked:
            raise ConflictError("Certificate is already revoked")

        revoked_at = self._clock()
        certificate.is_revoked = True
        certificate.revoked_at = revoked_at
        # Reassign so SQLAlchemy sees the JSONB change.
        certificate.metadata_json = {
            **certificate.metadata_json,
            "revocation": {
                "revokedAt": revoked_at.isoformat(),
                "revokedBy": caller_id,
                "reason": reason,
            },
        }
        await self._repository.save()

        await self._notifications.notify(
            certificate.owner_id,
            build_certificate_revoked_notification(
                certificate_id=certificate.id,
                work_id=certificate.work_id,
                work_title=work.title if work else str(certificate.metadata_json.get("title")),
                reason=reason,
            ),
        )
        logger.info(
            "certificate_revoked",
            certificate_id=certificate.id,
            revoked_by=caller_id,
        )
        return certificate
