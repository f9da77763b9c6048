"""
Public API Router for hash and certificate verification.

No authentication is required; responses are privacy-filtered.
"""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from synthrights.core.errors import CertificateServiceError, as_http_exception
from synthrights.modules.verification.dependencies import ResolverDep
from synthrights.modules.verification.schemas import FuzzyVerificationRequest

router = APIRouter()


@router.get("/certificates/{certificate_id}", response_model=None)
async def verify_certificate(certificate_id: str, resolver: ResolverDep) -> JSONResponse:
    """Check a certificate id: 404 when unknown, 410 when revoked or expired."""
    result = await resolver.verify_certificate(certificate_id)
    if not result["success"]:
        status_code = status.HTTP_404_NOT_FOUND
    elif result.get("revoked") or result.get("expired"):
        status_code = status.HTTP_410_GONE
    else:
        status_code = status.HTTP_200_OK
    return JSONResponse(status_code=status_code, content=result)


@router.get("/{metadata_hash}")
async def verify_hash(metadata_hash: str, resolver: ResolverDep) -> dict[str, Any]:
    """Exact-match verification; unknown hashes answer ``verified: false``."""
    return await resolver.verify_hash(metadata_hash)


@router.post("/{metadata_hash}")
async def verify_fuzzy(
    metadata_hash: str,
    body: FuzzyVerificationRequest,
    resolver: ResolverDep,
) -> dict[str, Any]:
    """Approximate verification from content and/or metadata."""
    try:
        return await resolver.verify_fuzzy(
            metadata_hash,
            content=body.content,
            metadata=body.metadata,
            threshold=body.threshold,
        )
    except CertificateServiceError as exc:
        raise as_http_exception(exc) from exc
