"""DockVault API schemas — request/response bodies and the query filter."""

from __future__ import annotations

from pydantic import BaseModel, Field

from dockvault.modules.docking.stage_schemas import PipelineState, StoredRecord


# ---------------------------------------------------------------------------
# Query filter
# ---------------------------------------------------------------------------


class QueryFilter(BaseModel):
    """Conjunctive filter over stored records. Absent field = no constraint."""

    protein: str | None = Field(None, description="Case-insensitive substring of protein")
    ligand: str | None = Field(None, description="Case-insensitive substring of ligand")
    min_energy: float | None = Field(None, description="Inclusive lower energy bound")
    max_energy: float | None = Field(None, description="Inclusive upper energy bound")
    tool: str | None = Field(None, description="Case-insensitive substring of docking tool")
    tags: set[str] | None = Field(None, description="Match if any of these tags is present")

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class SubmissionRequest(BaseModel):
    content: str = Field(..., description="Raw docking output text")
    source_label: str = Field("", description="Caller label, e.g. original filename")


class SubmissionResponse(BaseModel):
    success: bool
    state: PipelineState
    record_id: int | None = None
    record: StoredRecord | None = None
    error: str | None = None
    error_code: str | None = None
    processing_time_ms: int = 0


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class QueryRequest(BaseModel):
    query: str = Field(..., description="Free-text filter, e.g. 'strong binders for protein 1ABC below -8'")


class QueryResponse(BaseModel):
    query: str
    filter: QueryFilter
    count: int
    results: list[StoredRecord]


# ---------------------------------------------------------------------------
# Results & integrity
# ---------------------------------------------------------------------------


class PaginatedResults(BaseModel):
    """Paginated list of stored docking records, insertion order."""

    items: list[StoredRecord]
    total: int
    page: int
    page_size: int
    pages: int


class IntegrityReport(BaseModel):
    """Digest recomputed from a stored record's own fields."""

    record_id: int
    digest: str
    solana_tx: str | None = None
    anchored: bool
