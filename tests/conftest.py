"""
Shared fixtures for the test suite.
Provides settings with a throwaway signing key, factories for fake rows and
the opt-in switch for database-backed integration tests.
"""

import os
from collections.abc import Callable
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import pytest

from synthrights.core.config import Settings, get_settings
from synthrights.core.crypto.signing import CertificateSigner, generate_signing_keypair
from synthrights.db.models import (
    CertificateType,
    RegistrationStatus,
    Visibility,
    WorkType,
)

FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def signing_keys() -> tuple[str, str]:
    return generate_signing_keypair()


@pytest.fixture
def settings(signing_keys: tuple[str, str]) -> Settings:
    private_pem, _ = signing_keys
    return Settings(
        certificate_signing_key=private_pem,
        certificate_signing_key_id="test-key-1",
        public_base_url="https://syntheticrights.test",
        anchor_timeout_seconds=0.2,
    )


@pytest.fixture
def signer(settings: Settings) -> CertificateSigner:
    return CertificateSigner(
        settings.certificate_signing_key, key_id=settings.certificate_signing_key_id
    )


@pytest.fixture
def make_owner() -> Callable[..., SimpleNamespace]:
    def _make(**overrides: Any) -> SimpleNamespace:
        data: dict[str, Any] = {
            "id": "user-1",
            "name": "Ada Lovelace",
            "username": "ada",
            "email": "ada@example.com",
            "avatar_url": "https://cdn.example.com/ada.png",
            "is_public": False,
        }
        data.update(overrides)
        data.setdefault("display_name", data["name"] or data["username"] or "Unknown")
        return SimpleNamespace(**data)

    return _make


@pytest.fixture
def make_work(make_owner: Callable[..., SimpleNamespace]) -> Callable[..., SimpleNamespace]:
    def _make(**overrides: Any) -> SimpleNamespace:
        data: dict[str, Any] = {
            "id": "w1",
            "owner_id": "user-1",
            "owner": make_owner(),
            "title": "Sunrise Over Hills",
            "description": "Early morning light over rolling hills",
            "work_type": WorkType.IMAGE,
            "category": "photography",
            "keywords": ["sunrise", "hills"],
            "file_urls": ["https://cdn.example.com/works/w1.png"],
            "thumbnail_url": "https://cdn.example.com/works/w1-thumb.png",
            "content_reference": "sha256:5f2c",
            "metadata_hash": "mh-abc",
            "registration_status": RegistrationStatus.PENDING,
            "detection_enabled": True,
            "ai_training_opt_out": True,
            "visibility": Visibility.PRIVATE,
            "created_at": datetime(2025, 1, 15, 9, 30, tzinfo=UTC),
            "blockchain_record": None,
        }
        data.update(overrides)
        return SimpleNamespace(**data)

    return _make


@pytest.fixture
def make_certificate(
    make_work: Callable[..., SimpleNamespace],
) -> Callable[..., SimpleNamespace]:
    def _make(**overrides: Any) -> SimpleNamespace:
        work = overrides.pop("work", None) or make_work()
        data: dict[str, Any] = {
            "id": "cert-1740830400000-0123456789abcdef",
            "work_id": work.id,
            "owner_id": work.owner_id,
            "work": work,
            "owner": work.owner,
            "certificate_type": CertificateType.STANDARD,
            "metadata_json": {
                "version": "1.0.0",
                "certificateId": "cert-1740830400000-0123456789abcdef",
                "certificateType": "standard",
                "workId": work.id,
                "ownerId": work.owner_id,
                "ownerName": "Ada Lovelace",
                "title": work.title,
                "type": "image",
                "registrationType": "standard",
                "metadataHash": work.metadata_hash,
                "registeredAt": "2025-01-15T09:30:00+00:00",
                "aiTrainingStatus": "opted_out",
                "verificationUrl": f"https://syntheticrights.test/verify/{work.metadata_hash}",
                "issuedAt": FIXED_NOW.isoformat(),
                "expiresAt": "2026-03-01T12:00:00+00:00",
            },
            "signature": "c2lnbmF0dXJl",
            "signature_algorithm": "Ed25519",
            "signing_key_id": "test-key-1",
            "public_url": "https://syntheticrights.test/certificate/cert-1740830400000-0123456789abcdef",
            "is_revoked": False,
            "revoked_at": None,
            "expires_at": datetime(2026, 3, 1, 12, 0, tzinfo=UTC),
            "created_at": FIXED_NOW,
        }
        data.update(overrides)
        return SimpleNamespace(**data)

    return _make


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests that need a PostgreSQL database (TEST_DATABASE_URL).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_integration = bool(
        config.getoption("--run-integration") or os.getenv("RUN_INTEGRATION") == "1"
    )
    if run_integration:
        return

    skip_integration = pytest.mark.skip(
        reason="integration tests require --run-integration or RUN_INTEGRATION=1"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
