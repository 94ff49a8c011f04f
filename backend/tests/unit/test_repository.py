"""Unit tests for the append-only record repositories.

SqlRepository runs against an in-memory SQLite database (aiosqlite) so no
Postgres instance is needed.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from dockvault.core.database import Base
from dockvault.modules.docking.errors import StorageFailure
from dockvault.modules.docking.repository import InMemoryRepository, SqlRepository
from dockvault.modules.docking.stage_schemas import StoredRecord
from dockvault.modules.docking.stages.anchor import verify_record
from samples import FIXED_TIMESTAMP


def _stored(ligand: str, solana_tx: str | None = None) -> StoredRecord:
    return StoredRecord(
        protein="1ABC",
        ligand=ligand,
        binding_energy=-8.7,
        docking_tool="AutoDock Vina",
        file_hash=ligand.lower().ljust(64, "f"),
        tags=("strong_binder", "tool_autodock_vina", "protein_identified", "ligand_identified"),
        confidence=1.0,
        timestamp=FIXED_TIMESTAMP,
        solana_tx=solana_tx,
    )


async def _session_factory(create_tables: bool = True) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(params=["memory", "sql"])
async def repo(request) -> AsyncGenerator:
    if request.param == "memory":
        yield InMemoryRepository()
    else:
        yield SqlRepository(await _session_factory())


# ---------------------------------------------------------------------------
# Shared contract
# ---------------------------------------------------------------------------


async def test_empty_repository(repo) -> None:
    assert await repo.list_all() == []
    assert await repo.get(1) is None


async def test_append_then_list_preserves_order(repo) -> None:
    first = await repo.append(_stored("MOL1"))
    second = await repo.append(_stored("MOL2", solana_tx="tx-2"))

    assert first != second
    records = await repo.list_all()
    assert [r.ligand for r in records] == ["MOL1", "MOL2"]
    assert records[1].solana_tx == "tx-2"


async def test_get_by_id(repo) -> None:
    record_id = await repo.append(_stored("MOL1"))
    assert await repo.get(record_id) == _stored("MOL1")
    assert await repo.get(record_id + 100) is None


async def test_stored_fields_round_trip_exactly(repo) -> None:
    """Retrieved records reproduce the digest sealed at anchor time."""
    original = _stored("MOL1", solana_tx="tx-1")
    record_id = await repo.append(original)

    retrieved = await repo.get(record_id)
    assert retrieved.tags == original.tags
    assert retrieved.timestamp == original.timestamp
    assert verify_record(retrieved) == verify_record(original)


async def test_append_rejects_non_stored_record(repo) -> None:
    with pytest.raises(TypeError):
        await repo.append({"protein": "1ABC"})


# ---------------------------------------------------------------------------
# Backend specifics
# ---------------------------------------------------------------------------


async def test_memory_ids_start_at_one() -> None:
    repo = InMemoryRepository()
    assert await repo.append(_stored("MOL1")) == 1
    assert await repo.append(_stored("MOL2")) == 2


async def test_memory_list_all_is_a_snapshot() -> None:
    repo = InMemoryRepository()
    await repo.append(_stored("MOL1"))
    snapshot = await repo.list_all()
    await repo.append(_stored("MOL2"))
    assert len(snapshot) == 1


async def test_memory_concurrent_appends_all_land() -> None:
    repo = InMemoryRepository()
    ids = await asyncio.gather(*(repo.append(_stored(f"MOL{i}")) for i in range(20)))
    assert sorted(ids) == list(range(1, 21))
    assert len(await repo.list_all()) == 20


async def test_sql_append_failure_raises_storage_failure() -> None:
    repo = SqlRepository(await _session_factory(create_tables=False))
    with pytest.raises(StorageFailure) as exc_info:
        await repo.append(_stored("MOL1"))
    assert exc_info.value.code == "STORAGE_FAILURE"
