"""
JSON-RPC client for an external rights registry node.

The node exposes ``rights_register``, ``rights_getRegistration``,
``rights_findSimilar`` and ``rights_isRevoked``. Transport and node-side
errors are logged and surfaced as unsuccessful results.
"""

from __future__ import annotations

from datetime import UTC, datetime
from itertools import count
from typing import Any

import httpx

from synthrights.core.logging import get_logger
from synthrights.modules.anchoring.base import (
    ExactVerification,
    FuzzyDescriptor,
    FuzzyVerification,
    RegistrationResult,
)

logger = get_logger(__name__)


class RegistryRPCError(RuntimeError):
    """JSON-RPC error object returned by the registry node."""


def _parse_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _parse_block_number(value: Any) -> int | None:
    return None if value in (None, "") else int(value)


# Transport failures and node payloads that do not decode into the expected shape.
_RPC_ERRORS = (httpx.HTTPError, RegistryRPCError, ValueError, TypeError)


class RpcBlockchainAnchor:
    """Ledger anchor speaking JSON-RPC 2.0 over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        *,
        network_name: str,
        timeout: float = 30.0,
        api_key: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._timeout = timeout
        self._api_key = api_key
        self._transport = transport
        self._ids = count(1)
        self.network_name = network_name

    async def _call(self, method: str, params: dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self._rpc_url, json=payload, headers=headers)
            response.raise_for_status()
            body = response.json()
        if not isinstance(body, dict):
            raise RegistryRPCError("Registry node returned a malformed response")
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise RegistryRPCError(message or "Registry node returned an error")
        return body.get("result")

    async def register(self, work_id: str, metadata_hash: str, owner_id: str) -> RegistrationResult:
        try:
            result = await self._call(
                "rights_register",
                {"workId": work_id, "metadataHash": metadata_hash, "ownerId": owner_id},
            )
            if not isinstance(result, dict) or not result.get("transactionId"):
                return RegistrationResult.failed("Registry returned no transaction id")
            return RegistrationResult(
                success=True,
                transaction_id=str(result["transactionId"]),
                block_number=_parse_block_number(result.get("blockNumber")),
                network_name=result.get("networkName") or self.network_name,
                registered_at=_parse_timestamp(result.get("timestamp")) or datetime.now(UTC),
            )
        except _RPC_ERRORS as exc:
            logger.warning("registry_register_failed", work_id=work_id, exc_info=True)
            return RegistrationResult.failed(str(exc) or "Registry request failed")

    async def verify_exact(self, metadata_hash: str) -> ExactVerification:
        try:
            result = await self._call("rights_getRegistration", {"metadataHash": metadata_hash})
            if not isinstance(result, dict) or not result.get("exists"):
                return ExactVerification(verified=False, error="Hash not registered")
            return ExactVerification(
                verified=True,
                timestamp=_parse_timestamp(result.get("timestamp")),
                transaction_id=result.get("transactionId"),
                block_number=_parse_block_number(result.get("blockNumber")),
                network_name=result.get("networkName") or self.network_name,
                owner_id=result.get("owner"),
            )
        except _RPC_ERRORS as exc:
            logger.warning("registry_lookup_failed", metadata_hash=metadata_hash, exc_info=True)
            return ExactVerification(verified=False, error=str(exc) or "Registry request failed")

    async def verify_fuzzy(self, descriptor: FuzzyDescriptor) -> FuzzyVerification:
        try:
            result = await self._call("rights_findSimilar", descriptor.to_payload())
            if not isinstance(result, dict) or not result.get("matched"):
                return FuzzyVerification(
                    matched=False, error="No similar works found on the ledger"
                )
            score = min(max(float(result.get("score", 0.0)), 0.0), 1.0)
            return FuzzyVerification(
                matched=True,
                match_score=score,
                timestamp=_parse_timestamp(result.get("timestamp")),
                transaction_id=result.get("transactionId"),
                network_name=result.get("networkName") or self.network_name,
                metadata_hash=result.get("metadataHash"),
            )
        except _RPC_ERRORS as exc:
            logger.warning("registry_fuzzy_failed", exc_info=True)
            return FuzzyVerification(matched=False, error=str(exc) or "Registry request failed")

    async def is_revoked(self, certificate_id: str) -> bool:
        try:
            result = await self._call("rights_isRevoked", {"certificateId": certificate_id})
        except _RPC_ERRORS:
            logger.warning(
                "registry_revocation_lookup_failed",
                certificate_id=certificate_id,
                exc_info=True,
            )
            return False
        return result is True
