"""DockVault Stage 4: Pipeline Orchestrator.

Pure Python controller. Threads each stage's output explicitly into the next:

  RawSubmission -> Extract -> Classify -> Anchor -> Persist -> StoredRecord

State machine (strictly linear, no retries):
  start -> extracted -> classified -> anchored -> persisted -> done
  start -> aborted        (extraction failure only)

Every stage method refuses input that is not the previous stage's output.
Once extraction succeeds the run always reaches "persisted" (with or without
a ledger reference) unless storage itself fails.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from dockvault.modules.docking.errors import MissingUpstreamData, ParseError
from dockvault.modules.docking.repository import RecordRepository
from dockvault.modules.docking.stage_schemas import (
    AnchorOutcome,
    ClassifiedRecord,
    ExtractedRecord,
    PipelineResult,
    PipelineState,
    RawSubmission,
    StoredRecord,
)
from dockvault.modules.docking.stages import classifier, extractor
from dockvault.modules.docking.stages.anchor import IntegrityAnchor, compute_record_digest

logger = structlog.get_logger()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DockingPipeline:
    """Sequences extractor, classifier, anchor and repository for one submission."""

    def __init__(
        self,
        repository: RecordRepository,
        anchor: IntegrityAnchor,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self.repository = repository
        self.anchor_impl = anchor
        self.clock = clock

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def extract(self, raw: RawSubmission) -> ExtractedRecord:
        if not isinstance(raw, RawSubmission):
            raise MissingUpstreamData("Extraction requires a RawSubmission.")
        return extractor.extract(raw)

    def classify(self, extracted: ExtractedRecord | None) -> ClassifiedRecord:
        # A ClassifiedRecord is also an ExtractedRecord; re-classifying is a sequencing error
        if not isinstance(extracted, ExtractedRecord) or isinstance(extracted, ClassifiedRecord):
            raise MissingUpstreamData("Classification requires an ExtractedRecord.")
        return classifier.classify(extracted)

    async def anchor(self, classified: ClassifiedRecord | None) -> AnchorOutcome:
        if not isinstance(classified, ClassifiedRecord) or isinstance(classified, StoredRecord):
            raise MissingUpstreamData("Anchoring requires a ClassifiedRecord.")
        return await self.anchor_impl.anchor(classified, self.clock())

    async def persist(
        self,
        classified: ClassifiedRecord | None,
        outcome: AnchorOutcome | None,
    ) -> tuple[int, StoredRecord]:
        if not isinstance(classified, ClassifiedRecord) or isinstance(classified, StoredRecord):
            raise MissingUpstreamData("Persisting requires a ClassifiedRecord.")
        if not isinstance(outcome, AnchorOutcome):
            raise MissingUpstreamData("Persisting requires an anchor outcome.")
        if outcome.digest != compute_record_digest(classified, outcome.timestamp):
            raise MissingUpstreamData("Anchor outcome was not produced for this record.")

        record = StoredRecord(
            **classified.model_dump(),
            timestamp=outcome.timestamp,
            solana_tx=outcome.ledger_reference,
        )
        record_id = await self.repository.append(record)
        return record_id, record

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    async def run(self, raw: RawSubmission) -> PipelineResult:
        """Run one submission through every stage.

        Returns an aborted result when the submission cannot be parsed.
        StorageFailure propagates; nothing is reported as stored.
        """
        states = [PipelineState.start]

        try:
            extracted = self.extract(raw)
        except ParseError as e:
            logger.warning(
                "Pipeline aborted: submission rejected",
                source=raw.source_label,
                file_hash=e.content_hash,
                error=str(e),
            )
            states.append(PipelineState.aborted)
            return PipelineResult(
                success=False,
                state=PipelineState.aborted,
                states=states,
                content_hash=e.content_hash,
                error=str(e),
                error_code=e.code,
            )
        states.append(PipelineState.extracted)

        # Past extraction there is no cancellation: finish even if the caller goes away
        return await asyncio.shield(self._complete(raw, extracted, states))

    async def _complete(
        self,
        raw: RawSubmission,
        extracted: ExtractedRecord,
        states: list[PipelineState],
    ) -> PipelineResult:
        classified = self.classify(extracted)
        states.append(PipelineState.classified)

        outcome = await self.anchor(classified)
        states.append(PipelineState.anchored)

        record_id, record = await self.persist(classified, outcome)
        states.append(PipelineState.persisted)

        logger.info(
            "Pipeline: docking record stored",
            source=raw.source_label,
            record_id=record_id,
            file_hash=record.file_hash,
            tags=list(record.tags),
            confidence=record.confidence,
            anchored=record.solana_tx is not None,
        )

        states.append(PipelineState.done)
        return PipelineResult(
            success=True,
            state=PipelineState.done,
            states=states,
            record_id=record_id,
            record=record,
            content_hash=record.file_hash,
        )
