"""DockVault Stage Contracts — Pydantic models passed between pipeline stages.

Defines the data structures that flow through the pipeline:
  Caller     -> Extractor:    RawSubmission
  Extractor  -> Classifier:   ExtractedRecord
  Classifier -> Anchor:       ClassifiedRecord
  Anchor     -> Persist:      AnchorOutcome
  Persist    -> Repository:   StoredRecord

All contracts are frozen: once a stage has produced a value, nothing
downstream can alter it.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

# Sentinels for values that could not be located in the submission.
NOT_DETERMINED = "UNKNOWN"
UNKNOWN_TOOL = "Unknown"
ENERGY_NOT_DETERMINED = 0.0


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class RawSubmission(BaseModel):
    """Raw submission content plus a caller-provided label. Never persisted."""

    model_config = {"frozen": True}

    content: bytes | str
    source_label: str = ""

    def content_bytes(self) -> bytes:
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode("utf-8")


# ---------------------------------------------------------------------------
# Stage 1: Extractor output
# ---------------------------------------------------------------------------


class ExtractedRecord(BaseModel):
    """Fields located in a submission; sentinels for anything not found."""

    model_config = {"frozen": True}

    protein: str = Field(..., description=f"Receptor identifier or '{NOT_DETERMINED}'")
    ligand: str = Field(..., description=f"Ligand identifier or '{NOT_DETERMINED}'")
    binding_energy: float = Field(
        ..., description="kcal/mol; 0.0 when no energy value was located"
    )
    docking_tool: str = Field(..., description=f"Detected tool or '{UNKNOWN_TOOL}'")
    file_hash: str = Field(..., description="SHA-256 hex digest of the raw submission bytes")


# ---------------------------------------------------------------------------
# Stage 2: Classifier output
# ---------------------------------------------------------------------------


class ClassifiedRecord(ExtractedRecord):
    """Extracted fields plus rule-derived tags and confidence."""

    tags: tuple[str, ...] = Field(
        ..., min_length=1, description="Tier tag first, then tool and identification tags"
    )
    confidence: float = Field(..., ge=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Stage 3: Anchor output
# ---------------------------------------------------------------------------


class AnchorOutcome(BaseModel):
    """Result of anchoring one classified record."""

    model_config = {"frozen": True}

    timestamp: str = Field(..., description="ISO-8601 time the record was sealed")
    digest: str = Field(..., description="SHA-256 of the canonical record serialization")
    ledger_reference: str | None = Field(
        None, description="Opaque ledger reference, None when anchoring was skipped or failed"
    )


# ---------------------------------------------------------------------------
# Stage 4: Persisted record
# ---------------------------------------------------------------------------


class StoredRecord(ClassifiedRecord):
    """The immutable record owned by the repository."""

    timestamp: str
    solana_tx: str | None = None


# ---------------------------------------------------------------------------
# Pipeline bookkeeping
# ---------------------------------------------------------------------------


class PipelineState(str, Enum):
    start = "start"
    extracted = "extracted"
    classified = "classified"
    anchored = "anchored"
    persisted = "persisted"
    done = "done"
    aborted = "aborted"


class PipelineResult(BaseModel):
    """Outcome of one pipeline run."""

    success: bool
    state: PipelineState
    states: list[PipelineState] = Field(
        default_factory=list, description="States visited, in order"
    )
    record_id: int | None = None
    record: StoredRecord | None = None
    content_hash: str | None = None
    error: str | None = None
    error_code: str | None = None
