"""Tests for the public verification router functions."""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException

from synthrights.core.errors import ValidationError
from synthrights.modules.verification.router import verify_certificate, verify_fuzzy, verify_hash
from synthrights.modules.verification.schemas import FuzzyVerificationRequest


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("result", "expected_status"),
    [
        ({"success": False, "verified": False}, 404),
        ({"success": True, "verified": False, "revoked": True}, 410),
        ({"success": True, "verified": False, "expired": True}, 410),
        ({"success": True, "verified": True, "revoked": False, "expired": False}, 200),
    ],
)
async def test_certificate_status_codes(result, expected_status) -> None:
    resolver = AsyncMock()
    resolver.verify_certificate.return_value = result

    response = await verify_certificate("cert-1", resolver)

    assert response.status_code == expected_status
    assert json.loads(response.body) == result


@pytest.mark.asyncio
async def test_hash_lookup_passes_result_through() -> None:
    resolver = AsyncMock()
    resolver.verify_hash.return_value = {"success": False, "verified": False}

    assert await verify_hash("0xabc", resolver) == {"success": False, "verified": False}
    resolver.verify_hash.assert_awaited_once_with("0xabc")


@pytest.mark.asyncio
async def test_fuzzy_forwards_request_fields() -> None:
    resolver = AsyncMock()
    resolver.verify_fuzzy.return_value = {"success": True, "verified": True}
    body = FuzzyVerificationRequest(content="text", metadata={"title": "T"}, threshold=0.5)

    await verify_fuzzy("0xabc", body, resolver)

    resolver.verify_fuzzy.assert_awaited_once_with(
        "0xabc", content="text", metadata={"title": "T"}, threshold=0.5
    )


@pytest.mark.asyncio
async def test_fuzzy_without_inputs_is_bad_request() -> None:
    resolver = AsyncMock()
    resolver.verify_fuzzy.side_effect = ValidationError(
        "Content or metadata required for fuzzy verification"
    )

    with pytest.raises(HTTPException) as exc_info:
        await verify_fuzzy("0xabc", FuzzyVerificationRequest(), resolver)

    assert exc_info.value.status_code == 400
