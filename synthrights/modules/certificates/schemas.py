"""Pydantic schemas for certificate issuance, listing, export and revocation."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from synthrights.db.models import CertificateType

ExportFormat = Literal["json", "html", "pdf"]


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class _ResponseModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class WatermarkOptions(_RequestModel):
    """Watermark overrides; unset fields fall back to configured defaults."""

    enabled: bool = True
    text: str | None = Field(default=None, max_length=120)
    opacity: float | None = Field(default=None, ge=0.0, le=1.0)
    angle: float | None = Field(default=None, ge=-360.0, le=360.0)
    color: str | None = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
    font_size: int | None = Field(default=None, alias="fontSize", ge=6, le=200)


class GenerateCertificateRequest(_RequestModel):
    work_id: str = Field(alias="workId", min_length=1)
    certificate_type: CertificateType = Field(
        default=CertificateType.STANDARD, alias="certificateType"
    )
    register_on_blockchain: bool = Field(default=False, alias="registerOnBlockchain")


class BatchCertificateRequest(_RequestModel):
    # Upper bound is enforced by the coordinator so oversized batches get a 400.
    work_ids: list[str] = Field(alias="workIds", min_length=1)
    certificate_type: CertificateType = Field(
        default=CertificateType.STANDARD, alias="certificateType"
    )
    register_on_blockchain: bool = Field(default=False, alias="registerOnBlockchain")


class BatchDownloadRequest(_RequestModel):
    work_ids: list[str] = Field(alias="workIds", min_length=1)
    certificate_type: CertificateType = Field(
        default=CertificateType.STANDARD, alias="certificateType"
    )
    include_blockchain: bool = Field(default=False, alias="includeBlockchain")
    format: ExportFormat = "pdf"
    watermark: WatermarkOptions | None = None


class RevokeCertificateRequest(_RequestModel):
    reason: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class CertificateResponse(_ResponseModel):
    id: str
    work_id: str = Field(alias="workId")
    owner_id: str = Field(alias="ownerId")
    certificate_type: CertificateType = Field(alias="certificateType")
    metadata: dict[str, Any]
    signature: str
    signature_algorithm: str = Field(alias="signatureAlgorithm")
    signing_key_id: str = Field(alias="signingKeyId")
    public_url: str = Field(alias="publicUrl")
    is_revoked: bool = Field(alias="isRevoked")
    revoked_at: datetime | None = Field(default=None, alias="revokedAt")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @classmethod
    def from_model(cls, certificate: Any) -> CertificateResponse:
        return cls(
            id=certificate.id,
            work_id=certificate.work_id,
            owner_id=certificate.owner_id,
            certificate_type=certificate.certificate_type,
            metadata=certificate.metadata_json,
            signature=certificate.signature,
            signature_algorithm=certificate.signature_algorithm,
            signing_key_id=certificate.signing_key_id,
            public_url=certificate.public_url,
            is_revoked=certificate.is_revoked,
            revoked_at=certificate.revoked_at,
            expires_at=certificate.expires_at,
            created_at=certificate.created_at,
        )


class GenerateCertificateResponse(_ResponseModel):
    success: bool = True
    certificate: CertificateResponse


class BatchItemResult(_ResponseModel):
    work_id: str = Field(alias="workId")
    success: bool
    certificate_id: str | None = Field(default=None, alias="certificateId")
    error: str | None = None


class BatchStats(_ResponseModel):
    total: int
    successful: int
    failed: int
    already_certified: int = Field(alias="alreadyCertified")


class BatchCertificateResponse(_ResponseModel):
    success: bool
    stats: BatchStats
    results: list[BatchItemResult]


class WorkSummary(_ResponseModel):
    id: str
    title: str
    type: str
    metadata_hash: str | None = Field(default=None, alias="metadataHash")
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")


class CertificateListItem(CertificateResponse):
    creative_work: WorkSummary = Field(alias="creativeWork")


class Pagination(_ResponseModel):
    total: int
    page: int
    limit: int
    pages: int


class CertificateListResponse(_ResponseModel):
    success: bool = True
    certificates: list[CertificateListItem]
    pagination: Pagination


class RevokedCertificate(_ResponseModel):
    id: str
    is_revoked: bool = Field(alias="isRevoked")
    revoked_at: datetime | None = Field(alias="revokedAt")


class RevokeCertificateResponse(_ResponseModel):
    success: bool = True
    certificate: RevokedCertificate
