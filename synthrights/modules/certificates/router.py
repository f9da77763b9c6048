"""
API Router for certificate issuance, listing, export and revocation.
"""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import JSONResponse, Response

from synthrights.core.errors import CertificateServiceError, NotFoundError, as_http_exception
from synthrights.core.logging import get_logger
from synthrights.core.security import CurrentUser, OptionalUser
from synthrights.modules.certificates.dependencies import (
    BatchCoordinatorDep,
    ExporterDep,
    IssuerDep,
    RepositoryDep,
    RevokerDep,
)
from synthrights.modules.certificates.schemas import (
    BatchCertificateRequest,
    BatchCertificateResponse,
    BatchDownloadRequest,
    CertificateListItem,
    CertificateListResponse,
    CertificateResponse,
    GenerateCertificateRequest,
    GenerateCertificateResponse,
    Pagination,
    RevokeCertificateRequest,
    RevokeCertificateResponse,
    RevokedCertificate,
    WatermarkOptions,
    WorkSummary,
)
from synthrights.modules.verification.presenters import certificate_detail

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/generate",
    response_model=GenerateCertificateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_certificate(
    body: GenerateCertificateRequest,
    user: CurrentUser,
    issuer: IssuerDep,
) -> GenerateCertificateResponse:
    """Issue a certificate for one of the caller's works."""
    try:
        certificate = await issuer.issue(
            body.work_id,
            user.sub,
            certificate_type=body.certificate_type,
            request_anchoring=body.register_on_blockchain,
        )
    except CertificateServiceError as exc:
        raise as_http_exception(exc) from exc
    return GenerateCertificateResponse(certificate=CertificateResponse.from_model(certificate))


@router.post("/batch", response_model=BatchCertificateResponse)
async def generate_certificate_batch(
    body: BatchCertificateRequest,
    user: CurrentUser,
    coordinator: BatchCoordinatorDep,
) -> BatchCertificateResponse:
    """Issue certificates for several works; per-item failures are reported, not raised."""
    try:
        report = await coordinator.issue_batch(
            user.sub,
            body.work_ids,
            certificate_type=body.certificate_type,
            include_blockchain=body.register_on_blockchain,
        )
    except CertificateServiceError as exc:
        raise as_http_exception(exc) from exc

    stats = report.stats
    return BatchCertificateResponse(
        success=stats.successful > 0,
        stats=stats,
        results=report.results,
    )


@router.post("/batch/download")
async def download_certificate_batch(
    body: BatchDownloadRequest,
    user: CurrentUser,
    coordinator: BatchCoordinatorDep,
) -> Response:
    """Issue certificates for several works and return them as a ZIP archive."""
    try:
        outcome = await coordinator.issue_batch_archive(
            user.sub,
            body.work_ids,
            certificate_type=body.certificate_type,
            include_blockchain=body.include_blockchain,
            format=body.format,
            watermark=body.watermark,
        )
    except CertificateServiceError as exc:
        raise as_http_exception(exc) from exc

    stats = outcome.report.stats
    if outcome.archive is None:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": outcome.error,
                "stats": stats.model_dump(by_alias=True),
                "results": [
                    item.model_dump(by_alias=True, exclude_none=True)
                    for item in outcome.report.results
                ],
            },
        )

    timestamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
    return Response(
        content=outcome.archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="certificates-{timestamp}.zip"',
            "X-Batch-Total": str(stats.total),
            "X-Batch-Succeeded": str(stats.successful),
            "X-Batch-Failed": str(stats.failed),
            "X-Batch-Already-Certified": str(stats.already_certified),
        },
    )


@router.get("", response_model=CertificateListResponse)
async def list_certificates(
    user: CurrentUser,
    repository: RepositoryDep,
    work_id: Annotated[str | None, Query(alias="workId")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> CertificateListResponse:
    """List the caller's certificates, newest first."""
    certificates, total = await repository.list_certificates(
        user.sub, work_id=work_id, page=page, limit=limit
    )
    items = [
        CertificateListItem(
            **CertificateResponse.from_model(certificate).model_dump(),
            creative_work=WorkSummary(
                id=certificate.work.id,
                title=certificate.work.title,
                type=certificate.work.work_type.value,
                metadata_hash=certificate.work.metadata_hash,
                thumbnail_url=certificate.work.thumbnail_url,
            ),
        )
        for certificate in certificates
    ]
    return CertificateListResponse(
        certificates=items,
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            pages=(total + limit - 1) // limit,
        ),
    )


@router.get("/{certificate_id}", response_model=None)
async def get_certificate(
    certificate_id: str,
    user: OptionalUser,
    repository: RepositoryDep,
    exporter: ExporterDep,
    format: Annotated[
        str | None, Query(description="Download format: json, html or pdf")
    ] = None,
    watermark: Annotated[bool, Query(description="Watermark PDF downloads")] = True,
    watermark_text: Annotated[str | None, Query(alias="watermarkText", max_length=120)] = None,
) -> Response | dict[str, object]:
    """
    Public certificate view, or a downloadable artifact when ``format`` is set.

    Downloads are limited to the certificate owner and the work owner.
    """
    certificate = await repository.get_certificate(certificate_id)
    if certificate is None:
        raise as_http_exception(NotFoundError("Certificate not found"))

    if format is None:
        if certificate.is_revoked:
            raise HTTPException(
                status_code=status.HTTP_410_GONE,
                detail="This certificate has been revoked",
            )
        if certificate.expires_at is not None and certificate.expires_at <= datetime.now(UTC):
            raise HTTPException(
                status_code=status.HTTP_410_GONE,
                detail="This certificate has expired",
            )
        return {"success": True, "certificate": certificate_detail(certificate)}

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    work_owner_id = certificate.work.owner_id if certificate.work is not None else None
    if user.sub not in (certificate.owner_id, work_owner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to download this certificate",
        )

    try:
        content = exporter.export(
            certificate,
            format,
            WatermarkOptions(enabled=watermark, text=watermark_text),
        )
    except CertificateServiceError as exc:
        raise as_http_exception(exc) from exc

    normalized = format.strip().lower()
    logger.info("certificate_exported", certificate_id=certificate.id, format=normalized)
    return Response(
        content=content,
        media_type=exporter.content_type(normalized),
        headers={
            "Content-Disposition": (
                f'attachment; filename="{exporter.filename(certificate, normalized)}"'
            ),
        },
    )


@router.post("/{certificate_id}/revoke", response_model=RevokeCertificateResponse)
async def revoke_certificate(
    certificate_id: str,
    body: RevokeCertificateRequest,
    user: CurrentUser,
    revoker: RevokerDep,
) -> RevokeCertificateResponse:
    """Permanently revoke a certificate with a stated reason."""
    try:
        certificate = await revoker.revoke(certificate_id, user.sub, body.reason)
    except CertificateServiceError as exc:
        raise as_http_exception(exc) from exc
    return RevokeCertificateResponse(
        certificate=RevokedCertificate(
            id=certificate.id,
            is_revoked=certificate.is_revoked,
            revoked_at=certificate.revoked_at,
        )
    )
