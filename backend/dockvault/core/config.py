from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "DockVault"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # Storage backend for docking results: "memory" keeps records for the
    # process lifetime, "database" appends to the docking_results table.
    repository_backend: Literal["memory", "database"] = "memory"
    database_url: str = "postgresql+asyncpg://dv:dv@localhost:5432/dockvault"

    # Integrity ledger: anchoring is skipped unless both are set
    ledger_url: str = ""
    ledger_api_key: str = ""
    ledger_timeout_seconds: float = 10.0

    # Ingestion
    max_submission_size_kb: int = 1024

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    @property
    def ledger_configured(self) -> bool:
        return bool(self.ledger_url and self.ledger_api_key)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
