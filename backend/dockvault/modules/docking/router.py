"""DockVault Docking API — /docking/ endpoints.

Pipeline:
  - /submissions             — Run one raw submission through the pipeline

Results (read-only):
  - /results                 — Paginated stored records, insertion order
  - /results/export          — CSV / Excel download
  - /results/{id}            — Single stored record
  - /results/{id}/integrity  — Recomputed digest + ledger reference

Query:
  - /query                   — Free-text filter over stored records
"""

from __future__ import annotations

import io
import math
import time

import pandas as pd
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from dockvault.core.config import settings
from dockvault.modules.docking.errors import StorageFailure
from dockvault.modules.docking.query import run_query
from dockvault.modules.docking.repository import RecordRepository, get_repository
from dockvault.modules.docking.schemas import (
    IntegrityReport,
    PaginatedResults,
    QueryRequest,
    QueryResponse,
    SubmissionRequest,
    SubmissionResponse,
)
from dockvault.modules.docking.stage_schemas import RawSubmission, StoredRecord
from dockvault.modules.docking.stages.anchor import IntegrityAnchor, build_anchor, verify_record
from dockvault.modules.docking.stages.orchestrator import DockingPipeline

logger = structlog.get_logger()

router = APIRouter(prefix="/docking", tags=["docking"])


def get_anchor() -> IntegrityAnchor:
    return build_anchor()


def get_pipeline(
    repository: RecordRepository = Depends(get_repository),
    anchor: IntegrityAnchor = Depends(get_anchor),
) -> DockingPipeline:
    return DockingPipeline(repository=repository, anchor=anchor)


# ---------------------------------------------------------------------------
# Submission pipeline
# ---------------------------------------------------------------------------


@router.post("/submissions", response_model=SubmissionResponse)
async def submit_docking_result(
    request: SubmissionRequest,
    pipeline: DockingPipeline = Depends(get_pipeline),
) -> SubmissionResponse:
    """Parse, tag, anchor and store one docking result submission.

    Pipeline: raw text → Extract → Classify → Anchor (ledger optional) → Persist

    A submission too short to contain a record comes back with success=False
    and nothing is stored.
    """
    start = time.monotonic()

    size_kb = len(request.content.encode("utf-8")) / 1024
    if size_kb > settings.max_submission_size_kb:
        raise HTTPException(
            status_code=413,
            detail=f"Submission too large: {size_kb:.1f} KB (max {settings.max_submission_size_kb} KB).",
        )

    logger.info("Docking submission request", source=request.source_label, size_kb=round(size_kb, 2))

    try:
        result = await pipeline.run(
            RawSubmission(content=request.content, source_label=request.source_label)
        )
    except StorageFailure as exc:
        logger.error("Docking submission not stored", error=str(exc))
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    elapsed_ms = int((time.monotonic() - start) * 1000)
    return SubmissionResponse(
        success=result.success,
        state=result.state,
        record_id=result.record_id,
        record=result.record,
        error=result.error,
        error_code=result.error_code,
        processing_time_ms=elapsed_ms,
    )


# ---------------------------------------------------------------------------
# Stored results (read-only)
# ---------------------------------------------------------------------------


@router.get("/results", response_model=PaginatedResults)
async def list_results(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
    repository: RecordRepository = Depends(get_repository),
) -> PaginatedResults:
    """Return stored docking records in insertion order."""
    records = await repository.list_all()
    total = len(records)
    offset = (page - 1) * page_size
    return PaginatedResults(
        items=records[offset : offset + page_size],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


# media type and file name per export format
_EXPORT_FORMATS: dict[str, tuple[str, str]] = {
    "csv": ("text/csv", "docking_results.csv"),
    "xlsx": (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "docking_results.xlsx",
    ),
}


def _flatten_record(record: StoredRecord) -> dict:
    """One spreadsheet row per stored record; tags joined with '; '."""
    return {
        **record.model_dump(exclude={"tags", "solana_tx"}),
        "tags": "; ".join(record.tags),
        "solana_tx": record.solana_tx or "",
    }


@router.get("/results/export")
async def export_results(
    format: str = Query("csv", description="Export format: csv or xlsx"),
    repository: RecordRepository = Depends(get_repository),
) -> StreamingResponse:
    """Download every stored docking record as CSV or Excel."""
    if format not in _EXPORT_FORMATS:
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported export format '{format}'. Use one of: {', '.join(_EXPORT_FORMATS)}.",
        )

    records = await repository.list_all()
    if not records:
        raise HTTPException(status_code=404, detail="No docking records to export.")

    df = pd.DataFrame([_flatten_record(r) for r in records])

    buffer = io.BytesIO()
    if format == "xlsx":
        df.to_excel(buffer, index=False, sheet_name="docking_results", engine="openpyxl")
    else:
        df.to_csv(buffer, index=False)
    buffer.seek(0)

    media_type, filename = _EXPORT_FORMATS[format]
    logger.info("Docking results exported", format=format, rows=len(df))
    return StreamingResponse(
        buffer,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/results/{record_id}", response_model=StoredRecord)
async def get_result(
    record_id: int,
    repository: RecordRepository = Depends(get_repository),
) -> StoredRecord:
    record = await repository.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Docking record {record_id} not found.")
    return record


@router.get("/results/{record_id}/integrity", response_model=IntegrityReport)
async def get_result_integrity(
    record_id: int,
    repository: RecordRepository = Depends(get_repository),
) -> IntegrityReport:
    """Recompute a stored record's digest for comparison with its ledger entry."""
    record = await repository.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Docking record {record_id} not found.")
    return IntegrityReport(
        record_id=record_id,
        digest=verify_record(record),
        solana_tx=record.solana_tx,
        anchored=record.solana_tx is not None,
    )


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


@router.post("/query", response_model=QueryResponse)
async def query_results(
    request: QueryRequest,
    repository: RecordRepository = Depends(get_repository),
) -> QueryResponse:
    """Filter stored records with a free-text query.

    Recognized: "protein X", "ligand X", "below/above N", "less/greater than N",
    "< N", "<= N", "> N", ">= N", tool names (vina, gold, glide) and tier phrases such as
    "strong binders". Anything else matches every record.
    """
    return await run_query(request.query, repository)
