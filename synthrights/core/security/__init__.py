"""Authentication dependencies for certificate endpoints."""

from synthrights.core.security.oidc import (
    CurrentUser,
    OptionalUser,
    TokenPayload,
    optional_verify_token,
    verify_token,
)

__all__ = [
    "CurrentUser",
    "OptionalUser",
    "TokenPayload",
    "verify_token",
    "optional_verify_token",
]
