"""Docking persistence model — append-only docking_results table.

Rows are inserted once and never updated: there is no updated_at column and
the repository exposes no update or delete path. The timestamp is kept as
the exact ISO string that was sealed into the integrity digest.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from dockvault.core.database import Base


class DockingResult(Base):
    """One finalized docking record."""

    __tablename__ = "docking_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    protein: Mapped[str] = mapped_column(Text, nullable=False)
    ligand: Mapped[str] = mapped_column(Text, nullable=False)
    binding_energy: Mapped[float] = mapped_column(Float, nullable=False)
    docking_tool: Mapped[str] = mapped_column(String(100), nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    file_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    solana_tx: Mapped[Optional[str]] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_docking_results_protein", "protein"),
        Index("idx_docking_results_ligand", "ligand"),
        Index("idx_docking_results_file_hash", "file_hash"),
    )
