"""
Byte-stable JSON for certificate metadata.

Both the work metadata hash and the Ed25519 certificate signature are taken
over RFC 8785 (JCS) output, so a verifier holding only the JSON document can
rebuild the exact bytes regardless of key order or number formatting.
"""

from __future__ import annotations

import hashlib
from typing import Any

import rfc8785


def canonicalize_jcs_bytes(data: Any) -> bytes:
    """Serialize a metadata snapshot to the bytes that get signed."""
    return rfc8785.dumps(data)


def sha256_hex_jcs(data: Any) -> str:
    """SHA-256 hex digest of the canonical bytes; the body of a ``0x`` metadata hash."""
    return hashlib.sha256(canonicalize_jcs_bytes(data)).hexdigest()
