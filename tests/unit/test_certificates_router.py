"""Tests for the certificate router functions."""

import io
import json
import zipfile
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException

from synthrights.core.errors import AnchoringFailedError, NotFoundError, ValidationError
from synthrights.db.models import CertificateType, Visibility
from synthrights.modules.certificates.batch import BatchArchive, BatchReport
from synthrights.modules.certificates.exporter import CertificateExporter
from synthrights.modules.certificates.router import (
    download_certificate_batch,
    generate_certificate,
    generate_certificate_batch,
    get_certificate,
    list_certificates,
    revoke_certificate,
)
from synthrights.modules.certificates.schemas import (
    BatchCertificateRequest,
    BatchDownloadRequest,
    BatchItemResult,
    GenerateCertificateRequest,
    RevokeCertificateRequest,
)

USER = SimpleNamespace(sub="user-1")


class TestGenerateCertificate:
    @pytest.mark.asyncio
    async def test_returns_issued_certificate(self, make_certificate) -> None:
        issuer = AsyncMock()
        issuer.issue.return_value = make_certificate()
        body = GenerateCertificateRequest.model_validate(
            {"workId": "w1", "certificateType": "premium", "registerOnBlockchain": True}
        )

        response = await generate_certificate(body, USER, issuer)

        issuer.issue.assert_awaited_once_with(
            "w1", "user-1", certificate_type=CertificateType.PREMIUM, request_anchoring=True
        )
        payload = response.model_dump(by_alias=True)
        assert payload["success"] is True
        assert payload["certificate"]["workId"] == "w1"

    @pytest.mark.asyncio
    async def test_anchoring_failure_maps_to_bad_gateway(self) -> None:
        issuer = AsyncMock()
        issuer.issue.side_effect = AnchoringFailedError("Failed to register on blockchain: down")
        body = GenerateCertificateRequest.model_validate({"workId": "w1"})

        with pytest.raises(HTTPException) as exc_info:
            await generate_certificate(body, USER, issuer)

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_missing_work_maps_to_not_found(self) -> None:
        issuer = AsyncMock()
        issuer.issue.side_effect = NotFoundError("Work not found")

        with pytest.raises(HTTPException) as exc_info:
            await generate_certificate(
                GenerateCertificateRequest.model_validate({"workId": "nope"}), USER, issuer
            )

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Work not found"


class TestBatch:
    @pytest.mark.asyncio
    async def test_batch_success_flag_follows_successful_count(self) -> None:
        coordinator = AsyncMock()
        coordinator.issue_batch.return_value = BatchReport(
            results=[BatchItemResult(work_id="w1", success=False, error="boom")]
        )

        response = await generate_certificate_batch(
            BatchCertificateRequest.model_validate({"workIds": ["w1"]}), USER, coordinator
        )

        assert response.success is False
        assert response.stats.failed == 1

    @pytest.mark.asyncio
    async def test_batch_not_found_carries_ids(self) -> None:
        coordinator = AsyncMock()
        coordinator.issue_batch.side_effect = NotFoundError(
            "Some works were not found or do not belong to you", notFoundIds=["w9"]
        )

        with pytest.raises(HTTPException) as exc_info:
            await generate_certificate_batch(
                BatchCertificateRequest.model_validate({"workIds": ["w9"]}), USER, coordinator
            )

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail["notFoundIds"] == ["w9"]

    @pytest.mark.asyncio
    async def test_oversized_batch_maps_to_bad_request(self) -> None:
        coordinator = AsyncMock()
        coordinator.issue_batch.side_effect = ValidationError(
            "Cannot generate more than 50 certificates at once"
        )

        with pytest.raises(HTTPException) as exc_info:
            await generate_certificate_batch(
                BatchCertificateRequest.model_validate({"workIds": ["w1"]}), USER, coordinator
            )

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_download_returns_zip_with_stats_headers(self) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("certificates/a-certificate.pdf", b"%PDF-1.4")
        report = BatchReport(
            results=[
                BatchItemResult(work_id="w1", success=True, certificate_id="cert-1"),
                BatchItemResult(
                    work_id="w2", success=False, error="Work already has a certificate"
                ),
            ]
        )
        coordinator = AsyncMock()
        coordinator.issue_batch_archive.return_value = BatchArchive(
            report=report, archive=buffer.getvalue()
        )

        response = await download_certificate_batch(
            BatchDownloadRequest.model_validate({"workIds": ["w1", "w2"]}), USER, coordinator
        )

        assert response.media_type == "application/zip"
        assert response.headers["X-Batch-Total"] == "2"
        assert response.headers["X-Batch-Succeeded"] == "1"
        assert response.headers["X-Batch-Already-Certified"] == "1"
        assert response.headers["Content-Disposition"].startswith(
            'attachment; filename="certificates-'
        )
        assert coordinator.issue_batch_archive.await_args.kwargs["format"] == "pdf"

    @pytest.mark.asyncio
    async def test_download_archive_failure_reports_results(self) -> None:
        report = BatchReport(
            results=[BatchItemResult(work_id="w1", success=True, certificate_id="cert-1")]
        )
        coordinator = AsyncMock()
        coordinator.issue_batch_archive.return_value = BatchArchive(
            report=report, archive=None, error="Failed to generate certificate archive"
        )

        response = await download_certificate_batch(
            BatchDownloadRequest.model_validate({"workIds": ["w1"]}), USER, coordinator
        )

        assert response.status_code == 500
        payload = json.loads(response.body)
        assert payload["error"] == "Failed to generate certificate archive"
        assert payload["stats"]["successful"] == 1
        assert payload["results"][0]["certificateId"] == "cert-1"


class TestListCertificates:
    @pytest.mark.asyncio
    async def test_paginates_owned_certificates(self, make_certificate) -> None:
        repository = AsyncMock()
        repository.list_certificates.return_value = ([make_certificate()], 21)

        response = await list_certificates(USER, repository, work_id=None, page=2, limit=10)

        repository.list_certificates.assert_awaited_once_with(
            "user-1", work_id=None, page=2, limit=10
        )
        assert response.pagination.pages == 3
        item = response.certificates[0].model_dump(by_alias=True)
        assert item["creativeWork"]["title"] == "Sunrise Over Hills"
        assert item["creativeWork"]["type"] == "image"


class TestGetCertificate:
    @pytest.fixture
    def exporter(self, settings) -> CertificateExporter:
        return CertificateExporter(settings)

    @pytest.mark.asyncio
    async def test_public_view_of_private_work_is_reduced(
        self, exporter, make_certificate
    ) -> None:
        repository = AsyncMock()
        repository.get_certificate.return_value = make_certificate(expires_at=None)

        result = await get_certificate(
            "cert-1", None, repository, exporter, format=None, watermark=True, watermark_text=None
        )

        detail = result["certificate"]
        assert detail["creativeWork"]["detailLevel"] == "limited"
        assert "aiTrainingStatus" not in detail["metadata"]
        assert "email" not in detail["creativeWork"]["owner"]

    @pytest.mark.asyncio
    async def test_public_view_of_public_work_is_full(
        self, exporter, make_certificate, make_work
    ) -> None:
        repository = AsyncMock()
        repository.get_certificate.return_value = make_certificate(
            work=make_work(visibility=Visibility.PUBLIC), expires_at=None
        )

        result = await get_certificate(
            "cert-1", None, repository, exporter, format=None, watermark=True, watermark_text=None
        )

        assert result["certificate"]["metadata"]["aiTrainingStatus"] == "opted_out"
        assert result["certificate"]["creativeWork"]["detailLevel"] == "full"

    @pytest.mark.asyncio
    async def test_revoked_certificate_is_gone(self, exporter, make_certificate) -> None:
        repository = AsyncMock()
        repository.get_certificate.return_value = make_certificate(is_revoked=True)

        with pytest.raises(HTTPException) as exc_info:
            await get_certificate(
                "cert-1", None, repository, exporter, format=None, watermark=True,
                watermark_text=None,
            )

        assert exc_info.value.status_code == 410

    @pytest.mark.asyncio
    async def test_unknown_certificate(self, exporter) -> None:
        repository = AsyncMock()
        repository.get_certificate.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await get_certificate(
                "cert-x", USER, repository, exporter, format="json", watermark=True,
                watermark_text=None,
            )

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_download_requires_authentication(self, exporter, make_certificate) -> None:
        repository = AsyncMock()
        repository.get_certificate.return_value = make_certificate()

        with pytest.raises(HTTPException) as exc_info:
            await get_certificate(
                "cert-1", None, repository, exporter, format="json", watermark=True,
                watermark_text=None,
            )

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_download_by_stranger_is_forbidden(self, exporter, make_certificate) -> None:
        repository = AsyncMock()
        repository.get_certificate.return_value = make_certificate()

        with pytest.raises(HTTPException) as exc_info:
            await get_certificate(
                "cert-1",
                SimpleNamespace(sub="intruder"),
                repository,
                exporter,
                format="json",
                watermark=True,
                watermark_text=None,
            )

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_owner_downloads_json(self, exporter, make_certificate) -> None:
        certificate = make_certificate()
        repository = AsyncMock()
        repository.get_certificate.return_value = certificate

        response = await get_certificate(
            certificate.id, USER, repository, exporter, format="JSON", watermark=True,
            watermark_text=None,
        )

        assert response.media_type == "application/json"
        assert (
            response.headers["Content-Disposition"]
            == f'attachment; filename="certificate-{certificate.id}.json"'
        )
        assert json.loads(response.body)["signature"] == certificate.signature

    @pytest.mark.asyncio
    async def test_invalid_format_is_bad_request(self, exporter, make_certificate) -> None:
        repository = AsyncMock()
        repository.get_certificate.return_value = make_certificate()

        with pytest.raises(HTTPException) as exc_info:
            await get_certificate(
                "cert-1", USER, repository, exporter, format="docx", watermark=True,
                watermark_text=None,
            )

        assert exc_info.value.status_code == 400
        assert "Supported formats" in exc_info.value.detail["message"]

    @pytest.mark.asyncio
    async def test_watermark_text_override_is_forwarded(self, make_certificate) -> None:
        exporter = MagicMock()
        exporter.export.return_value = b"%PDF"
        exporter.content_type.return_value = "application/pdf"
        exporter.filename.return_value = "certificate-cert-1.pdf"
        repository = AsyncMock()
        repository.get_certificate.return_value = make_certificate()

        await get_certificate(
            "cert-1", USER, repository, exporter, format="pdf", watermark=False,
            watermark_text="DRAFT",
        )

        options = exporter.export.call_args.args[2]
        assert options.enabled is False
        assert options.text == "DRAFT"


class TestRevokeCertificate:
    @pytest.mark.asyncio
    async def test_returns_revocation_state(self, make_certificate) -> None:
        revoker = AsyncMock()
        revoker.revoke.return_value = make_certificate(is_revoked=True)

        response = await revoke_certificate(
            "cert-1", RevokeCertificateRequest(reason="Sold rights"), USER, revoker
        )

        revoker.revoke.assert_awaited_once_with("cert-1", "user-1", "Sold rights")
        assert response.certificate.is_revoked is True

    @pytest.mark.asyncio
    async def test_missing_reason_is_bad_request(self) -> None:
        revoker = AsyncMock()
        revoker.revoke.side_effect = ValidationError("Reason for revocation is required")

        with pytest.raises(HTTPException) as exc_info:
            await revoke_certificate("cert-1", RevokeCertificateRequest(), USER, revoker)

        assert exc_info.value.status_code == 400
