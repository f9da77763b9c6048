"""FastAPI dependencies that assemble the certificate services per request."""

from typing import Annotated

from fastapi import Depends

from synthrights.core.config import Settings, get_settings
from synthrights.core.crypto.signing import CertificateSigner
from synthrights.core.errors import SigningFailedError, as_http_exception
from synthrights.core.logging import get_logger
from synthrights.db.session import DbSession
from synthrights.modules.anchoring import BlockchainAnchor, build_blockchain_anchor
from synthrights.modules.certificates.batch import BatchCertificateCoordinator
from synthrights.modules.certificates.exporter import CertificateExporter
from synthrights.modules.certificates.issuer import CertificateIssuer
from synthrights.modules.certificates.repository import CertificateRepository
from synthrights.modules.certificates.revoker import CertificateRevoker
from synthrights.modules.notifications import NotificationService

logger = get_logger(__name__)

SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_repository(db: DbSession) -> CertificateRepository:
    return CertificateRepository(db)


def get_anchor(db: DbSession, settings: SettingsDep) -> BlockchainAnchor:
    return build_blockchain_anchor(db, settings)


def get_notification_service(db: DbSession) -> NotificationService:
    return NotificationService(db)


def get_signer(settings: SettingsDep) -> CertificateSigner:
    try:
        return CertificateSigner(
            settings.certificate_signing_key,
            key_id=settings.certificate_signing_key_id,
        )
    except SigningFailedError as exc:
        logger.error("certificate_signer_unavailable", error=exc.message)
        raise as_http_exception(exc) from exc


def get_optional_signer(settings: SettingsDep) -> CertificateSigner | None:
    """Signer for verification paths, which still answer without a usable key."""
    try:
        return CertificateSigner(
            settings.certificate_signing_key,
            key_id=settings.certificate_signing_key_id,
        )
    except SigningFailedError:
        logger.warning("certificate_signer_unavailable_for_verification")
        return None


RepositoryDep = Annotated[CertificateRepository, Depends(get_repository)]
AnchorDep = Annotated[BlockchainAnchor, Depends(get_anchor)]
NotificationsDep = Annotated[NotificationService, Depends(get_notification_service)]
SignerDep = Annotated[CertificateSigner, Depends(get_signer)]
OptionalSignerDep = Annotated[CertificateSigner | None, Depends(get_optional_signer)]


def get_issuer(
    repository: RepositoryDep,
    anchor: AnchorDep,
    signer: SignerDep,
    notifications: NotificationsDep,
    settings: SettingsDep,
) -> CertificateIssuer:
    return CertificateIssuer(repository, anchor, signer, notifications, settings=settings)


def get_exporter(settings: SettingsDep) -> CertificateExporter:
    return CertificateExporter(settings)


def get_revoker(repository: RepositoryDep, notifications: NotificationsDep) -> CertificateRevoker:
    return CertificateRevoker(repository, notifications)


IssuerDep = Annotated[CertificateIssuer, Depends(get_issuer)]
ExporterDep = Annotated[CertificateExporter, Depends(get_exporter)]
RevokerDep = Annotated[CertificateRevoker, Depends(get_revoker)]


def get_batch_coordinator(
    repository: RepositoryDep,
    issuer: IssuerDep,
    exporter: ExporterDep,
    settings: SettingsDep,
) -> BatchCertificateCoordinator:
    return BatchCertificateCoordinator(repository, issuer, exporter, settings=settings)


BatchCoordinatorDep = Annotated[BatchCertificateCoordinator, Depends(get_batch_coordinator)]
