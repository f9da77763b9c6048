"""
Deterministic metadata hashing for creative works.

A work's hash covers only its registrable attributes. Attributes are
normalized (whitespace trimmed, keywords de-duplicated and sorted) and
canonicalized with RFC 8785 before hashing, so the same logical content
always yields the same ``0x``-prefixed SHA-256 digest.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from synthrights.core.crypto.canonicalization import sha256_hex_jcs

HASH_PREFIX = "0x"

HASHED_ATTRIBUTES = (
    "title",
    "description",
    "work_type",
    "category",
    "keywords",
    "content_reference",
    "owner_id",
)


def _normalize_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(getattr(value, "value", value)).strip()
    return text or None


def _normalize_keywords(value: Iterable[Any] | None) -> list[str]:
    if not value:
        return []
    return sorted({str(item).strip().lower() for item in value if str(item).strip()})


def registrable_attributes(work: Any) -> dict[str, Any]:
    """Extract the hashed attribute set from a work row (or any lookalike)."""
    return {name: getattr(work, name, None) for name in HASHED_ATTRIBUTES}


def compute_metadata_hash(attributes: Mapping[str, Any]) -> str:
    """Hash a work's registrable attributes.

    Unknown keys are ignored; missing keys hash as ``null``.
    """
    normalized: dict[str, Any] = {}
    for name in HASHED_ATTRIBUTES:
        raw = attributes.get(name)
        if name == "keywords":
            normalized[name] = _normalize_keywords(raw)
        else:
            normalized[name] = _normalize_text(raw)
    return HASH_PREFIX + sha256_hex_jcs(normalized)


@dataclass(frozen=True)
class Anchored:
    """Work with a ledger registration."""

    metadata_hash: str | None
    transaction_id: str


@dataclass(frozen=True)
class Unanchored:
    """Work with no ledger registration; the hash may not be computed yet."""

    metadata_hash: str | None = None


AnchorState = Anchored | Unanchored


def anchor_state(work: Any) -> AnchorState:
    """Derive the anchoring state of a work from its blockchain record."""
    record = getattr(work, "blockchain_record", None)
    if record is not None:
        return Anchored(metadata_hash=work.metadata_hash, transaction_id=record.transaction_id)
    return Unanchored(metadata_hash=work.metadata_hash or None)
