"""
Domain error taxonomy for the certificate pipeline.

Services raise these; routers translate them into ``HTTPException`` through
:func:`as_http_exception` so status codes stay consistent across endpoints.
"""

from typing import Any

from fastapi import HTTPException, status


class CertificateServiceError(Exception):
    """Base class for all domain errors raised by the certificate services."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class NotFoundError(CertificateServiceError):
    """Work, certificate or batch member does not exist (or is not visible)."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(CertificateServiceError):
    """Caller is authenticated but does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(CertificateServiceError):
    """Malformed input: empty reason, unknown format, oversized batch."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(CertificateServiceError):
    """State conflict, e.g. revoking an already revoked certificate."""

    status_code = status.HTTP_409_CONFLICT


class SigningFailedError(CertificateServiceError):
    """Signing key missing or unusable; nothing was persisted."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class AnchoringFailedError(CertificateServiceError):
    """Ledger registration failed or timed out; nothing was persisted."""

    status_code = status.HTTP_502_BAD_GATEWAY


def as_http_exception(exc: CertificateServiceError) -> HTTPException:
    """Map a domain error to the HTTP error returned to clients."""
    if exc.context:
        return HTTPException(
            status_code=exc.status_code,
            detail={"message": exc.message, **exc.context},
        )
    return HTTPException(status_code=exc.status_code, detail=exc.message)
