"""
OIDC/JWT token verification for Keycloak integration.
Provides dependency injection for authenticated endpoints.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated, Any, cast

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt  # type: ignore[import-untyped]

from synthrights.core.config import get_settings
from synthrights.core.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TokenPayload:
    """Validated token payload; ``sub`` is the platform user id."""

    sub: str
    email: str | None
    preferred_username: str | None
    name: str | None
    roles: list[str]
    exp: datetime
    iat: datetime
    raw_claims: dict[str, Any]

    @property
    def display_name(self) -> str:
        return self.name or self.preferred_username or self.sub


class JWKSClient:
    """
    JWKS client that caches the realm's public keys.

    Keys are refetched when the cache is older than an hour or an unknown
    ``kid`` shows up, which covers Keycloak key rotation.
    """

    def __init__(self) -> None:
        self._keys: dict[str, dict[str, Any]] = {}
        self._last_fetch: datetime | None = None
        self._cache_duration_seconds = 3600

    async def get_signing_key(self, kid: str) -> dict[str, Any]:
        settings = get_settings()
        now = datetime.now(UTC)
        should_refresh = (
            self._last_fetch is None
            or (now - self._last_fetch).total_seconds() > self._cache_duration_seconds
            or kid not in self._keys
        )
        if should_refresh:
            await self._fetch_jwks(settings.keycloak_jwks_url)

        if kid not in self._keys:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token signing key not found",
            )
        return self._keys[kid]

    async def _fetch_jwks(self, jwks_url: str) -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(jwks_url, timeout=10.0)
                response.raise_for_status()
                jwks_data = cast(dict[str, Any], response.json())
        except httpx.HTTPError as e:
            logger.error("jwks_fetch_failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Unable to fetch signing keys from identity provider",
            ) from e

        self._keys = {
            str(key_data["kid"]): key_data
            for key_data in jwks_data.get("keys", [])
            if isinstance(key_data, dict) and key_data.get("use") == "sig" and "kid" in key_data
        }
        self._last_fetch = datetime.now(UTC)
        logger.info("jwks_refreshed", key_count=len(self._keys))


_jwks_client = JWKSClient()


async def _decode_token(token: str) -> TokenPayload:
    """Validate signature, expiry and issuer of a bearer token."""
    settings = get_settings()
    try:
        kid = jwt.get_unverified_header(token).get("kid")
        if not kid:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token missing key ID",
            )

        signing_key = await _jwks_client.get_signing_key(kid)
        payload = jwt.decode(
            token,
            signing_key,
            algorithms=["RS256"],
            options={
                "verify_aud": False,  # Keycloak puts client ID in azp, not aud
                "verify_exp": True,
                "verify_iat": True,
                "verify_iss": False,
            },
        )
    except JWTError as e:
        logger.warning("token_verification_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e

    token_issuer = payload.get("iss")
    if not token_issuer or token_issuer not in set(settings.keycloak_allowed_issuers_all):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token issuer",
        )

    roles: list[str] = []
    if "realm_access" in payload:
        roles.extend(payload["realm_access"].get("roles", []))
    if "resource_access" in payload:
        client_access = payload["resource_access"].get(settings.keycloak_client_id, {})
        roles.extend(client_access.get("roles", []))

    return TokenPayload(
        sub=payload["sub"],
        email=payload.get("email"),
        preferred_username=payload.get("preferred_username"),
        name=payload.get("name"),
        roles=sorted(set(roles)),
        exp=datetime.fromtimestamp(payload["exp"], tz=UTC),
        iat=datetime.fromtimestamp(payload["iat"], tz=UTC),
        raw_claims=payload,
    )


async def verify_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TokenPayload:
    """Dependency that requires a valid bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return await _decode_token(credentials.credentials)


async def optional_verify_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TokenPayload | None:
    """Optional auth dependency for public verification endpoints."""
    if credentials is None:
        return None
    return await _decode_token(credentials.credentials)


CurrentUser = Annotated[TokenPayload, Depends(verify_token)]
OptionalUser = Annotated[TokenPayload | None, Depends(optional_verify_token)]
