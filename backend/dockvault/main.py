from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dockvault.core.config import settings
from dockvault.core.database import engine
from dockvault.modules.docking.router import router as docking_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(
        "DockVault API starting",
        repository_backend=settings.repository_backend,
        ledger_configured=settings.ledger_configured,
    )
    if not settings.ledger_configured:
        logger.warning("No ledger configured; records will be stored without a ledger reference")
    yield
    # Pooled connections are only opened by the database backend
    if settings.repository_backend == "database":
        await engine.dispose()
    logger.info("DockVault API stopped")


app = FastAPI(
    title=settings.app_name,
    description="Docking result ingestion, tagging, integrity anchoring and query.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)

# The docking API is read/append only
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

app.include_router(docking_router, prefix=settings.api_prefix)


@app.get("/health")
async def health() -> dict[str, str]:
    return {
        "status": "ok",
        "repository_backend": settings.repository_backend,
        "ledger": "configured" if settings.ledger_configured else "disabled",
    }
