"""Privacy-aware views of works, owners and certificates for public responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from synthrights.db.models import Certificate, CreativeWork, User, Visibility


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _value(value: Any) -> Any:
    return getattr(value, "value", value)


def is_public_work(work: CreativeWork) -> bool:
    return work.visibility == Visibility.PUBLIC


def owner_view(owner: User | None) -> dict[str, Any]:
    """Display name always; username and avatar only for public profiles. Never email."""
    if owner is None:
        return {"name": "Unknown"}
    view: dict[str, Any] = {"name": owner.display_name}
    if owner.is_public:
        view["id"] = owner.id
        view["username"] = owner.username
        view["avatarUrl"] = owner.avatar_url
    return view


def blockchain_view(work: CreativeWork) -> dict[str, Any] | None:
    record = work.blockchain_record
    if record is None:
        return None
    return {
        "transactionId": record.transaction_id,
        "blockNumber": record.block_number,
        "networkName": record.network_name,
        "registeredAt": _iso(record.registered_at),
        "verified": record.verified,
    }


def work_view(work: CreativeWork) -> dict[str, Any]:
    """Full details for PUBLIC works, the reduced set otherwise."""
    view: dict[str, Any] = {
        "id": work.id,
        "title": work.title,
        "registrationStatus": _value(work.registration_status),
        "metadataHash": work.metadata_hash,
        "owner": owner_view(work.owner),
        "detailLevel": "full" if is_public_work(work) else "limited",
    }
    if is_public_work(work):
        view.update(
            {
                "description": work.description,
                "type": _value(work.work_type),
                "category": work.category,
                "thumbnailUrl": work.thumbnail_url,
                "fileUrls": list(work.file_urls or []),
                "detectionEnabled": work.detection_enabled,
                "createdAt": _iso(work.created_at),
            }
        )
    return view


# Metadata keys that are safe to show for a non-public work.
LIMITED_METADATA_KEYS = (
    "version",
    "certificateId",
    "workId",
    "ownerName",
    "title",
    "metadataHash",
    "registeredAt",
    "transactionId",
    "blockNumber",
    "networkName",
    "issuedAt",
    "expiresAt",
)


def certificate_summary(certificate: Certificate, *, revoked: bool | None = None) -> dict[str, Any]:
    metadata = certificate.metadata_json or {}
    return {
        "id": certificate.id,
        "certificateType": _value(certificate.certificate_type),
        "issuedAt": metadata.get("issuedAt"),
        "expiresAt": _iso(certificate.expires_at),
        "isRevoked": certificate.is_revoked if revoked is None else revoked,
        "publicUrl": certificate.public_url,
    }


def certificate_detail(certificate: Certificate) -> dict[str, Any]:
    """Public certificate page payload, reduced for non-public works."""
    work = certificate.work
    metadata = certificate.metadata_json or {}
    full = work is not None and is_public_work(work)
    if full:
        shown_metadata = {k: v for k, v in metadata.items() if k != "revocation"}
    else:
        shown_metadata = {k: metadata[k] for k in LIMITED_METADATA_KEYS if k in metadata}
    return {
        **certificate_summary(certificate),
        "metadata": shown_metadata,
        "signature": certificate.signature,
        "signatureAlgorithm": certificate.signature_algorithm,
        "creativeWork": work_view(work) if work is not None else None,
        "blockchain": blockchain_view(work) if work is not None else None,
    }
