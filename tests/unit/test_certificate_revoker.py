"""Tests for CertificateRevoker."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from synthrights.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from synthrights.db.models import NotificationType
from synthrights.modules.certificates.revoker import CertificateRevoker

REVOKED_AT = datetime(2025, 6, 1, 8, 0, tzinfo=UTC)


@pytest.fixture
def repo() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def notifications() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def revoker(repo: AsyncMock, notifications: AsyncMock) -> CertificateRevoker:
    return CertificateRevoker(repo, notifications, clock=lambda: REVOKED_AT)


class TestRevoke:
    @pytest.mark.asyncio
    async def test_marks_certificate_and_keeps_signature(
        self, revoker, repo, notifications, make_certificate
    ) -> None:
        certificate = make_certificate()
        original_metadata = dict(certificate.metadata_json)
        repo.get_certificate.return_value = certificate

        result = await revoker.revoke(certificate.id, "user-1", "  Licence terminated ")

        assert result.is_revoked is True
        assert result.revoked_at == REVOKED_AT
        assert result.signature == "c2lnbmF0dXJl"
        assert result.metadata_json["revocation"] == {
            "revokedAt": REVOKED_AT.isoformat(),
            "revokedBy": "user-1",
            "reason": "Licence terminated",
        }
        for key, value in original_metadata.items():
            assert result.metadata_json[key] == value
        repo.save.assert_awaited_once()

        user_id, template = notifications.notify.await_args.args
        assert user_id == "user-1"
        assert template.type == NotificationType.SYSTEM
        assert template.metadata["reason"] == "Licence terminated"

    @pytest.mark.asyncio
    async def test_work_owner_may_revoke_transferred_certificate(
        self, revoker, repo, make_certificate, make_work
    ) -> None:
        certificate = make_certificate(owner_id="previous-owner", work=make_work(owner_id="user-9"))
        repo.get_certificate.return_value = certificate

        result = await revoker.revoke(certificate.id, "user-9", "Transferred")
        assert result.is_revoked is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", [None, "", "   "])
    async def test_blank_reason_is_rejected_before_lookup(self, revoker, repo, reason) -> None:
        with pytest.raises(ValidationError, match="Reason for revocation is required"):
            await revoker.revoke("cert-1", "user-1", reason)
        repo.get_certificate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_certificate(self, revoker, repo) -> None:
        repo.get_certificate.return_value = None
        with pytest.raises(NotFoundError):
            await revoker.revoke("cert-missing", "user-1", "Mistake")

    @pytest.mark.asyncio
    async def test_stranger_cannot_revoke(self, revoker, repo, make_certificate) -> None:
        repo.get_certificate.return_value = make_certificate()
        with pytest.raises(ForbiddenError):
            await revoker.revoke("cert-1", "intruder", "Mine now")
        repo.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_revocation_conflicts(
        self, revoker, repo, notifications, make_certificate
    ) -> None:
        repo.get_certificate.return_value = make_certificate(
            is_revoked=True, revoked_at=REVOKED_AT
        )
        with pytest.raises(ConflictError, match="already revoked"):
            await revoker.revoke("cert-1", "user-1", "Again")
        repo.save.assert_not_awaited()
        notifications.notify.assert_not_awaited()
