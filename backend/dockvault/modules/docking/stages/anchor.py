"""DockVault Stage 3: Integrity Anchor.

Seals a classified record with a SHA-256 digest over a fixed field subset
and, when a ledger is configured, submits that digest for a tamper-evident
reference.

Only the digest ever leaves the process. Any verifier holding a StoredRecord
can recompute it with verify_record(); the raw submission is not needed.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from dockvault.core.config import settings
from dockvault.modules.docking.errors import LedgerUnavailable, MissingUpstreamData
from dockvault.modules.docking.stage_schemas import (
    AnchorOutcome,
    ClassifiedRecord,
    StoredRecord,
)

logger = structlog.get_logger()

# Exact field subset covered by the digest
DIGEST_FIELDS: tuple[str, ...] = (
    "protein",
    "ligand",
    "binding_energy",
    "docking_tool",
    "tags",
    "confidence",
    "file_hash",
    "timestamp",
)


# ---------------------------------------------------------------------------
# Canonical digest
# ---------------------------------------------------------------------------


def canonical_payload(record: ClassifiedRecord, timestamp: str) -> str:
    """Deterministic JSON serialization of the digest fields."""
    payload: dict[str, Any] = {
        "protein": record.protein,
        "ligand": record.ligand,
        "binding_energy": record.binding_energy,
        "docking_tool": record.docking_tool,
        "tags": list(record.tags),
        "confidence": record.confidence,
        "file_hash": record.file_hash,
        "timestamp": timestamp,
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def compute_record_digest(record: ClassifiedRecord, timestamp: str) -> str:
    return hashlib.sha256(canonical_payload(record, timestamp).encode("ascii")).hexdigest()


def verify_record(record: StoredRecord) -> str:
    """Recompute the digest of a stored record from its own fields."""
    return compute_record_digest(record, record.timestamp)


# ---------------------------------------------------------------------------
# Ledger client
# ---------------------------------------------------------------------------


class LedgerClient:
    """Submits digests to the external integrity ledger over HTTP."""

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def submit(self, digest: str) -> str:
        """Submit a digest and return the ledger's opaque reference.

        Raises:
            LedgerUnavailable: on HTTP failure, timeout, or a reply without
                a reference.
        """
        try:
            return await asyncio.wait_for(self._post(digest), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise LedgerUnavailable(f"Ledger submission timed out after {self.timeout}s") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise LedgerUnavailable(f"Ledger submission failed: {e}") from e

    async def _post(self, digest: str) -> str:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(self.url, headers=self.headers, json={"digest": digest})
            resp.raise_for_status()
            try:
                body = resp.json()
            except ValueError as e:
                raise LedgerUnavailable("Ledger reply is not JSON") from e

        reference = None
        if isinstance(body, dict):
            reference = body.get("reference") or body.get("signature")
        if not isinstance(reference, str) or not reference:
            raise LedgerUnavailable("Ledger reply carries no reference")
        return reference


# ---------------------------------------------------------------------------
# Anchors
# ---------------------------------------------------------------------------


class IntegrityAnchor(ABC):
    """Seals a classified record; never raises for ledger problems."""

    async def anchor(self, record: ClassifiedRecord, timestamp: str) -> AnchorOutcome:
        if not isinstance(record, ClassifiedRecord):
            raise MissingUpstreamData("Anchor requires a ClassifiedRecord from the classifier.")

        digest = compute_record_digest(record, timestamp)
        reference = await self.submit(digest)
        return AnchorOutcome(timestamp=timestamp, digest=digest, ledger_reference=reference)

    @abstractmethod
    async def submit(self, digest: str) -> str | None:
        """Return a ledger reference for the digest, or None."""
        ...


class DisabledAnchor(IntegrityAnchor):
    """Ledger not configured: digest is computed, proof is skipped."""

    async def submit(self, digest: str) -> str | None:
        logger.warning("ledger_anchor_skipped", reason="No ledger URL or API key configured", digest=digest)
        return None


class LedgerAnchor(IntegrityAnchor):
    """Submits the digest to the external ledger."""

    def __init__(self, client: LedgerClient) -> None:
        self.client = client

    async def submit(self, digest: str) -> str | None:
        try:
            reference = await self.client.submit(digest)
        except LedgerUnavailable as e:
            logger.warning("ledger_anchor_failed", digest=digest, error=str(e))
            return None
        logger.info("ledger_anchor_created", digest=digest, reference=reference)
        return reference


def build_anchor() -> IntegrityAnchor:
    """Pick the anchor implementation from settings."""
    if not settings.ledger_configured:
        return DisabledAnchor()
    return LedgerAnchor(
        LedgerClient(
            settings.ledger_url,
            settings.ledger_api_key,
            timeout=settings.ledger_timeout_seconds,
        )
    )
