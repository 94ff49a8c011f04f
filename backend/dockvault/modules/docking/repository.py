"""Append-only repository for finalized docking records.

Two backends share the append/list_all/get contract:
  - InMemoryRepository: process-lifetime list, appends serialized by a lock
  - SqlRepository:      docking_results table, one transaction per append

Neither offers update or delete.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dockvault.core.config import settings
from dockvault.core.database import async_session
from dockvault.modules.docking.errors import StorageFailure
from dockvault.modules.docking.models import DockingResult
from dockvault.modules.docking.stage_schemas import StoredRecord

logger = structlog.get_logger()


class RecordRepository(ABC):
    """Append-only store of StoredRecords."""

    @abstractmethod
    async def append(self, record: StoredRecord) -> int:
        """Persist a record and return its id.

        Raises:
            StorageFailure: the record could not be durably appended.
        """
        ...

    @abstractmethod
    async def list_all(self) -> list[StoredRecord]:
        """Snapshot of every record, in insertion order."""
        ...

    @abstractmethod
    async def get(self, record_id: int) -> StoredRecord | None:
        ...


class InMemoryRepository(RecordRepository):
    def __init__(self) -> None:
        self._records: list[StoredRecord] = []
        self._lock = asyncio.Lock()

    async def append(self, record: StoredRecord) -> int:
        if not isinstance(record, StoredRecord):
            raise TypeError(f"Expected StoredRecord, got {type(record).__name__}")
        async with self._lock:
            self._records.append(record)
            return len(self._records)

    async def list_all(self) -> list[StoredRecord]:
        return list(self._records)

    async def get(self, record_id: int) -> StoredRecord | None:
        if 1 <= record_id <= len(self._records):
            return self._records[record_id - 1]
        return None


class SqlRepository(RecordRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(self, record: StoredRecord) -> int:
        if not isinstance(record, StoredRecord):
            raise TypeError(f"Expected StoredRecord, got {type(record).__name__}")
        row = DockingResult(
            protein=record.protein,
            ligand=record.ligand,
            binding_energy=record.binding_energy,
            docking_tool=record.docking_tool,
            tags=list(record.tags),
            confidence=record.confidence,
            file_hash=record.file_hash,
            timestamp=record.timestamp,
            solana_tx=record.solana_tx,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                    await session.flush()
                    record_id = row.id
        except SQLAlchemyError as e:
            logger.error("Docking record append failed", file_hash=record.file_hash, error=str(e))
            raise StorageFailure(f"Could not persist docking record: {e}") from e
        return record_id

    async def list_all(self) -> list[StoredRecord]:
        async with self._session_factory() as session:
            result = await session.execute(select(DockingResult).order_by(DockingResult.id.asc()))
            return [_to_record(row) for row in result.scalars().all()]

    async def get(self, record_id: int) -> StoredRecord | None:
        async with self._session_factory() as session:
            row = await session.get(DockingResult, record_id)
            return _to_record(row) if row is not None else None


def _to_record(row: DockingResult) -> StoredRecord:
    return StoredRecord(
        protein=row.protein,
        ligand=row.ligand,
        binding_energy=row.binding_energy,
        docking_tool=row.docking_tool,
        tags=tuple(row.tags),
        confidence=row.confidence,
        file_hash=row.file_hash,
        timestamp=row.timestamp,
        solana_tx=row.solana_tx,
    )


# ---------------------------------------------------------------------------
# Process-wide repository (FastAPI dependency)
# ---------------------------------------------------------------------------

_repository: RecordRepository | None = None


def get_repository() -> RecordRepository:
    global _repository
    if _repository is None:
        if settings.repository_backend == "database":
            _repository = SqlRepository(async_session)
        else:
            _repository = InMemoryRepository()
        logger.info("Docking repository initialized", backend=settings.repository_backend)
    return _repository
