"""Hashing, canonicalization and signing primitives for certificates."""

from synthrights.core.crypto.canonicalization import canonicalize_jcs_bytes, sha256_hex_jcs
from synthrights.core.crypto.hashing import (
    Anchored,
    AnchorState,
    Unanchored,
    anchor_state,
    compute_metadata_hash,
)
from synthrights.core.crypto.signing import CertificateSigner, generate_signing_keypair

__all__ = [
    "Anchored",
    "AnchorState",
    "CertificateSigner",
    "Unanchored",
    "anchor_state",
    "canonicalize_jcs_bytes",
    "compute_metadata_hash",
    "generate_signing_keypair",
    "sha256_hex_jcs",
]
