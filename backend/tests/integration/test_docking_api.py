"""Integration tests for the docking endpoints.

These tests exercise the full FastAPI request lifecycle (routing, Pydantic
serialisation, dependency injection, error mapping) against an in-memory
repository and a ledger-less anchor, so no database or network is touched.

They verify:

  - A submission runs through every stage and is listed afterwards
  - A rejected submission returns success=False and stores nothing
  - Oversized submissions are refused with 413 before parsing
  - Storage failures surface as 503
  - Pagination, single-record lookup and 404s
  - Integrity reports reproduce the sealed digest
  - CSV / Excel export
  - Free-text query over stored records
"""

from __future__ import annotations

import io

import pandas as pd
from httpx import AsyncClient

from dockvault.core.config import settings
from dockvault.main import app
from dockvault.modules.docking.errors import StorageFailure
from dockvault.modules.docking.repository import RecordRepository, get_repository
from samples import GENERIC_TEXT, GLIDE_LOG, GOLD_LOG, VINA_LOG

# ---------------------------------------------------------------------------
# Prefix used by the FastAPI app
# ---------------------------------------------------------------------------
PREFIX = "/api/v1/docking"


async def _submit(client: AsyncClient, content: str, label: str = "") -> dict:
    resp = await client.post(f"{PREFIX}/submissions", json={"content": content, "source_label": label})
    assert resp.status_code == 200
    return resp.json()


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["repository_backend"] == settings.repository_backend
    assert body["ledger"] in ("configured", "disabled")


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


async def test_submission_is_stored_and_listed(client: AsyncClient) -> None:
    body = await _submit(client, VINA_LOG, "vina.log")

    assert body["success"] is True
    assert body["state"] == "done"
    assert body["record_id"] == 1
    record = body["record"]
    assert record["protein"] == "1ABC"
    assert record["ligand"] == "MOL123"
    assert record["binding_energy"] == -8.7
    assert record["docking_tool"] == "AutoDock Vina"
    assert record["tags"][0] == "strong_binder"
    assert record["confidence"] == 1.0
    assert record["solana_tx"] is None

    listing = (await client.get(f"{PREFIX}/results")).json()
    assert listing["total"] == 1
    assert listing["items"][0] == record


async def test_short_submission_is_rejected_not_stored(client: AsyncClient) -> None:
    body = await _submit(client, "too short")

    assert body["success"] is False
    assert body["state"] == "aborted"
    assert body["error_code"] == "PARSE_ERROR"
    assert body["record"] is None

    listing = (await client.get(f"{PREFIX}/results")).json()
    assert listing["total"] == 0


async def test_oversized_submission_returns_413(client: AsyncClient) -> None:
    content = "x" * (settings.max_submission_size_kb * 1024 + 1)
    resp = await client.post(f"{PREFIX}/submissions", json={"content": content})
    assert resp.status_code == 413
    assert "too large" in resp.json()["detail"]


async def test_missing_content_returns_422(client: AsyncClient) -> None:
    resp = await client.post(f"{PREFIX}/submissions", json={"source_label": "empty"})
    assert resp.status_code == 422


async def test_storage_failure_returns_503(client: AsyncClient) -> None:
    class BrokenRepository(RecordRepository):
        async def append(self, record):
            raise StorageFailure("database unreachable")

        async def list_all(self):
            return []

        async def get(self, record_id):
            return None

    app.dependency_overrides[get_repository] = lambda: BrokenRepository()
    resp = await client.post(f"{PREFIX}/submissions", json={"content": VINA_LOG})
    assert resp.status_code == 503
    assert "database unreachable" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


async def test_results_pagination(client: AsyncClient) -> None:
    for content in (VINA_LOG, GOLD_LOG, GLIDE_LOG):
        await _submit(client, content)

    resp = await client.get(f"{PREFIX}/results", params={"page": 2, "page_size": 2})
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert body["pages"] == 2
    assert body["page"] == 2
    assert [item["docking_tool"] for item in body["items"]] == ["Glide"]


async def test_get_single_result(client: AsyncClient) -> None:
    await _submit(client, VINA_LOG)
    created = await _submit(client, GOLD_LOG)

    resp = await client.get(f"{PREFIX}/results/{created['record_id']}")
    assert resp.status_code == 200
    assert resp.json()["docking_tool"] == "GOLD"


async def test_get_unknown_result_returns_404(client: AsyncClient) -> None:
    resp = await client.get(f"{PREFIX}/results/999")
    assert resp.status_code == 404


async def test_integrity_report(client: AsyncClient) -> None:
    created = await _submit(client, GLIDE_LOG)

    resp = await client.get(f"{PREFIX}/results/{created['record_id']}/integrity")
    assert resp.status_code == 200
    report = resp.json()
    assert report["record_id"] == created["record_id"]
    assert len(report["digest"]) == 64
    assert report["anchored"] is False
    assert report["solana_tx"] is None

    again = (await client.get(f"{PREFIX}/results/{created['record_id']}/integrity")).json()
    assert again["digest"] == report["digest"]


async def test_integrity_unknown_result_returns_404(client: AsyncClient) -> None:
    resp = await client.get(f"{PREFIX}/results/42/integrity")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


async def test_export_csv(client: AsyncClient) -> None:
    await _submit(client, VINA_LOG)
    await _submit(client, GENERIC_TEXT)

    resp = await client.get(f"{PREFIX}/results/export", params={"format": "csv"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "docking_results.csv" in resp.headers["content-disposition"]

    df = pd.read_csv(io.BytesIO(resp.content))
    assert list(df["protein"]) == ["1ABC", "5XYZ"]
    assert df["tags"][0].split("; ")[0] == "strong_binder"


async def test_export_xlsx(client: AsyncClient) -> None:
    await _submit(client, GOLD_LOG)

    resp = await client.get(f"{PREFIX}/results/export", params={"format": "xlsx"})
    assert resp.status_code == 200

    df = pd.read_excel(io.BytesIO(resp.content), engine="openpyxl")
    assert list(df["docking_tool"]) == ["GOLD"]


async def test_export_invalid_format_returns_422(client: AsyncClient) -> None:
    await _submit(client, VINA_LOG)
    resp = await client.get(f"{PREFIX}/results/export", params={"format": "pdf"})
    assert resp.status_code == 422


async def test_export_empty_returns_404(client: AsyncClient) -> None:
    resp = await client.get(f"{PREFIX}/results/export")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


async def test_query_filters_stored_records(client: AsyncClient) -> None:
    for content in (VINA_LOG, GOLD_LOG, GLIDE_LOG, GENERIC_TEXT):
        await _submit(client, content)

    resp = await client.post(f"{PREFIX}/query", json={"query": "protein 1ABC below -7.0"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 1
    assert body["filter"]["protein"] == "1ABC"
    assert body["filter"]["max_energy"] == -7.0
    assert body["results"][0]["ligand"] == "MOL123"


async def test_query_tier_phrase(client: AsyncClient) -> None:
    for content in (VINA_LOG, GOLD_LOG, GLIDE_LOG):
        await _submit(client, content)

    body = (await client.post(f"{PREFIX}/query", json={"query": "very strong binders"})).json()
    assert [r["docking_tool"] for r in body["results"]] == ["GOLD"]


async def test_query_without_filters_returns_everything(client: AsyncClient) -> None:
    await _submit(client, VINA_LOG)
    await _submit(client, GLIDE_LOG)

    body = (await client.post(f"{PREFIX}/query", json={"query": "show everything"})).json()
    assert body["count"] == 2
