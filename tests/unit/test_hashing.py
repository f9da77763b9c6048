"""Tests for work metadata hashing and anchoring state."""

from types import SimpleNamespace

from synthrights.core.crypto.hashing import (
    Anchored,
    Unanchored,
    anchor_state,
    compute_metadata_hash,
    registrable_attributes,
)
from synthrights.db.models import WorkType

BASE = {
    "title": "Sunrise Over Hills",
    "description": "Early morning light",
    "work_type": WorkType.IMAGE,
    "category": "photography",
    "keywords": ["sunrise", "hills"],
    "content_reference": "sha256:5f2c",
    "owner_id": "user-1",
}


class TestComputeMetadataHash:
    def test_hash_is_prefixed_sha256_hex(self) -> None:
        digest = compute_metadata_hash(BASE)
        assert digest.startswith("0x")
        assert len(digest) == 66
        int(digest[2:], 16)

    def test_same_content_same_hash(self) -> None:
        reordered = dict(reversed(list(BASE.items())))
        assert compute_metadata_hash(BASE) == compute_metadata_hash(reordered)

    def test_keyword_order_case_and_whitespace_do_not_matter(self) -> None:
        variant = {**BASE, "keywords": [" Hills", "sunrise ", "hills"], "title": " Sunrise Over Hills "}
        assert compute_metadata_hash(variant) == compute_metadata_hash(BASE)

    def test_enum_and_plain_string_types_hash_alike(self) -> None:
        assert compute_metadata_hash({**BASE, "work_type": "image"}) == compute_metadata_hash(BASE)

    def test_any_attribute_change_changes_hash(self) -> None:
        original = compute_metadata_hash(BASE)
        for key, value in (
            ("title", "Sunset Over Hills"),
            ("description", "Late evening light"),
            ("work_type", WorkType.VIDEO),
            ("category", "art"),
            ("keywords", ["sunrise"]),
            ("content_reference", "sha256:9999"),
            ("owner_id", "user-2"),
        ):
            assert compute_metadata_hash({**BASE, key: value}) != original, key

    def test_unknown_keys_are_ignored(self) -> None:
        assert compute_metadata_hash({**BASE, "thumbnail_url": "x"}) == compute_metadata_hash(BASE)

    def test_registrable_attributes_reads_work_fields(self) -> None:
        work = SimpleNamespace(**BASE, id="w1", thumbnail_url="t.png")
        assert compute_metadata_hash(registrable_attributes(work)) == compute_metadata_hash(BASE)


class TestAnchorState:
    def test_work_without_record_is_unanchored(self) -> None:
        work = SimpleNamespace(metadata_hash="mh-abc", blockchain_record=None)
        assert anchor_state(work) == Unanchored(metadata_hash="mh-abc")

    def test_work_without_hash_is_unanchored_with_no_hash(self) -> None:
        work = SimpleNamespace(metadata_hash=None, blockchain_record=None)
        assert anchor_state(work) == Unanchored()

    def test_work_with_record_is_anchored(self) -> None:
        record = SimpleNamespace(transaction_id="0xtx")
        work = SimpleNamespace(metadata_hash="0xhash", blockchain_record=record)
        assert anchor_state(work) == Anchored(metadata_hash="0xhash", transaction_id="0xtx")
