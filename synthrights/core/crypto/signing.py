"""
Ed25519 signing of certificate metadata.

Metadata is canonicalized with RFC 8785 before signing so any holder of the
public key can re-derive the exact signed bytes from the exported JSON.
Ed25519 signatures are deterministic: the same metadata and key always yield
the same signature.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

from synthrights.core.crypto.canonicalization import canonicalize_jcs_bytes
from synthrights.core.errors import SigningFailedError

SIGNATURE_ALGORITHM = "Ed25519"


def generate_signing_keypair() -> tuple[str, str]:
    """Generate a new Ed25519 key pair for certificate signing.

    Returns
    -------
    tuple[str, str]
        ``(private_key_pem, public_key_pem)`` as PEM-encoded strings.
    """
    private_key = Ed25519PrivateKey.generate()
    private_pem = private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    ).decode("utf-8")
    public_pem = private_key.public_key().public_bytes(
        encoding=Encoding.PEM,
        format=PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


class CertificateSigner:
    """Sign and verify canonical certificate metadata with one Ed25519 key."""

    algorithm = SIGNATURE_ALGORITHM

    def __init__(self, private_key_pem: str, key_id: str) -> None:
        self.key_id = key_id
        self._private_key = self._load_private_key(private_key_pem)

    @staticmethod
    def _load_private_key(private_key_pem: str) -> Ed25519PrivateKey | None:
        if not private_key_pem.strip():
            return None
        try:
            key = load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
        except (ValueError, TypeError) as exc:
            raise SigningFailedError("Certificate signing key could not be loaded") from exc
        if not isinstance(key, Ed25519PrivateKey):
            raise SigningFailedError("Certificate signing key must be an Ed25519 key")
        return key

    @property
    def public_key(self) -> Ed25519PublicKey:
        if self._private_key is None:
            raise SigningFailedError("Certificate signing key is not configured")
        return self._private_key.public_key()

    def public_key_pem(self) -> str:
        return self.public_key.public_bytes(
            encoding=Encoding.PEM,
            format=PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    def sign(self, metadata: dict[str, Any]) -> str:
        """Return the base64 Ed25519 signature over canonical ``metadata``.

        Raises :class:`SigningFailedError` when no key is configured or the
        metadata cannot be canonicalized.
        """
        if self._private_key is None:
            raise SigningFailedError("Certificate signing key is not configured")
        try:
            payload = canonicalize_jcs_bytes(metadata)
        except Exception as exc:
            raise SigningFailedError("Certificate metadata could not be canonicalized") from exc
        signature = self._private_key.sign(payload)
        return base64.b64encode(signature).decode("utf-8")

    def verify(self, metadata: dict[str, Any], signature: str) -> bool:
        """Check ``signature`` against canonical ``metadata``."""
        try:
            raw_signature = base64.b64decode(signature, validate=True)
        except (binascii.Error, ValueError):
            return False
        try:
            self.public_key.verify(raw_signature, canonicalize_jcs_bytes(metadata))
        except InvalidSignature:
            return False
        return True
