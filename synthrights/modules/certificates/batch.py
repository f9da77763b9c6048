"""
Batch issuance.

The whole batch is rejected before any work is touched when it is empty,
oversized, or names a work the caller does not own. After that each work is
issued inside its own savepoint so one failure rolls back only that item.
"""

from __future__ import annotations

import io
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field

from synthrights.core.config import Settings, get_settings
from synthrights.core.errors import CertificateServiceError, NotFoundError, ValidationError
from synthrights.core.logging import get_logger
from synthrights.db.models import Certificate, CertificateType
from synthrights.modules.certificates.exporter import SUPPORTED_FORMATS, CertificateExporter
from synthrights.modules.certificates.issuer import CertificateIssuer
from synthrights.modules.certificates.repository import CertificateRepository
from synthrights.modules.certificates.schemas import BatchItemResult, BatchStats, WatermarkOptions

logger = get_logger(__name__)

ALREADY_CERTIFIED = "Work already has a certificate"


@dataclass
class BatchReport:
    results: list[BatchItemResult] = field(default_factory=list)
    certificates: list[Certificate] = field(default_factory=list)

    @property
    def stats(self) -> BatchStats:
        successful = sum(1 for item in self.results if item.success)
        return BatchStats(
            total=len(self.results),
            successful=successful,
            failed=len(self.results) - successful,
            already_certified=sum(1 for item in self.results if item.error == ALREADY_CERTIFIED),
        )


@dataclass
class BatchArchive:
    report: BatchReport
    archive: bytes | None
    error: str | None = None


class BatchCertificateCoordinator:
    """Fan the issuer out over a bounded list of works."""

    def __init__(
        self,
        repository: CertificateRepository,
        issuer: CertificateIssuer,
        exporter: CertificateExporter | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._repository = repository
        self._issuer = issuer
        self._settings = settings or get_settings()
        self._exporter = exporter or CertificateExporter(self._settings)

    def _validate_size(self, work_ids: Sequence[str]) -> list[str]:
        unique_ids = list(dict.fromkeys(work_ids))
        if not unique_ids:
            raise ValidationError("At least one work id is required")
        limit = self._settings.batch_max_items
        if len(unique_ids) > limit:
            raise ValidationError(f"Cannot generate more than {limit} certificates at once")
        return unique_ids

    async def issue_batch(
        self,
        owner_id: str,
        work_ids: Sequence[str],
        certificate_type: CertificateType = CertificateType.STANDARD,
        include_blockchain: bool = False,
    ) -> BatchReport:
        unique_ids = self._validate_size(work_ids)

        # Locking the owned rows keeps the already-certified check below
        # consistent for concurrent batches over the same works.
        owned = await self._repository.lock_owned_works(owner_id, unique_ids)
        owned_ids = {work.id for work in owned}
        missing = [work_id for work_id in unique_ids if work_id not in owned_ids]
        if missing:
            raise NotFoundError(
                "Some works were not found or do not belong to you",
                notFoundIds=missing,
            )

        counts = await self._repository.certificate_counts(unique_ids)
        report = BatchReport()
        for work_id in unique_ids:
            if counts.get(work_id, 0) > 0:
                report.results.append(
                    BatchItemResult(work_id=work_id, success=False, error=ALREADY_CERTIFIED)
                )
                continue

            try:
                async with self._repository.savepoint():
                    certificate = await self._issuer.issue(
                        work_id,
                        owner_id,
                        certificate_type=certificate_type,
                        request_anchoring=include_blockchain,
                    )
            except CertificateServiceError as exc:
                logger.warning("batch_certificate_item_failed", work_id=work_id, error=exc.message)
                report.results.append(
                    BatchItemResult(work_id=work_id, success=False, error=exc.message)
                )
            except Exception:
                logger.warning("batch_certificate_item_failed", work_id=work_id, exc_info=True)
                report.results.append(
                    BatchItemResult(
                        work_id=work_id, success=False, error="Certificate generation failed"
                    )
                )
            else:
                report.certificates.append(certificate)
                report.results.append(
                    BatchItemResult(work_id=work_id, success=True, certificate_id=certificate.id)
                )

        stats = report.stats
        logger.info(
            "certificate_batch_completed",
            owner_id=owner_id,
            total=stats.total,
            successful=stats.successful,
            already_certified=stats.already_certified,
        )
        return report

    async def issue_batch_archive(
        self,
        owner_id: str,
        work_ids: Sequence[str],
        certificate_type: CertificateType = CertificateType.STANDARD,
        include_blockchain: bool = False,
        *,
        format: str = "pdf",
        watermark: WatermarkOptions | None = None,
    ) -> BatchArchive:
        """Issue the batch, then zip every new certificate's exported artifact.

        When packaging fails the issued certificates are kept and the report is
        returned with ``archive=None``.
        """
        if format not in SUPPORTED_FORMATS:
            raise ValidationError(
                f"Invalid format '{format}'. Supported formats: {', '.join(SUPPORTED_FORMATS)}"
            )
        report = await self.issue_batch(owner_id, work_ids, certificate_type, include_blockchain)

        try:
            archive = self._build_archive(report.certificates, format, watermark)
        except Exception:
            logger.error("certificate_archive_failed", owner_id=owner_id, exc_info=True)
            return BatchArchive(
                report=report,
                archive=None,
                error="Failed to generate certificate archive",
            )
        return BatchArchive(report=report, archive=archive)

    def _build_archive(
        self,
        certificates: Sequence[Certificate],
        format: str,
        watermark: WatermarkOptions | None,
    ) -> bytes:
        buffer = io.BytesIO()
        used_names: set[str] = set()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for certificate in certificates:
                name = self._exporter.archive_member_name(certificate, format)
                if name in used_names:
                    stem, _, ext = name.rpartition(".")
                    name = f"{stem}-{certificate.id}.{ext}"
                used_names.add(name)
                zf.writestr(name, self._exporter.export(certificate, format, watermark))
        return buffer.getvalue()
