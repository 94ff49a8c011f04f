"""Shared test fixtures for the DockVault backend test suite."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from dockvault.main import app
from dockvault.modules.docking.repository import InMemoryRepository, get_repository
from dockvault.modules.docking.router import get_anchor
from dockvault.modules.docking.stages.anchor import DisabledAnchor
from dockvault.modules.docking.stages.orchestrator import DockingPipeline
from samples import FIXED_TIMESTAMP


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def pipeline(repository: InMemoryRepository) -> DockingPipeline:
    """Pipeline with no ledger and a fixed clock."""
    return DockingPipeline(
        repository=repository,
        anchor=DisabledAnchor(),
        clock=lambda: FIXED_TIMESTAMP,
    )


@pytest.fixture
async def client(repository: InMemoryRepository) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client that talks directly to the FastAPI ASGI app.

    Each test gets its own empty repository and a ledger-less anchor.
    """
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_anchor] = lambda: DisabledAnchor()
    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
