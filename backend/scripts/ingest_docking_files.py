#!/usr/bin/env python3
"""DockVault Batch Ingestion Runner.

Feeds docking output files through the full pipeline:
  1. Extract protein / ligand / binding energy
  2. Classify (tier, tool and identification tags + confidence)
  3. Anchor the record digest (ledger optional)
  4. Append to the configured repository

Usage:
    # Ingest every file in a directory (needs the database backend)
    REPOSITORY_BACKEND=database python -m scripts.ingest_docking_files data/vina_runs/

    # Mix files and directories, only *.pdbqt
    REPOSITORY_BACKEND=database python -m scripts.ingest_docking_files run1.log results/ --pattern "*.pdbqt"

    # Dry run (extract + classify only, nothing anchored or stored)
    python -m scripts.ingest_docking_files data/ --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections import Counter
from pathlib import Path

# Add backend to path for imports
_backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_backend))

# Load .env before importing dockvault modules
from dotenv import load_dotenv
load_dotenv(_backend / ".env")

import structlog

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

from dockvault.core.config import settings
from dockvault.modules.docking.errors import ParseError, StorageFailure
from dockvault.modules.docking.repository import get_repository
from dockvault.modules.docking.stage_schemas import PipelineState, RawSubmission
from dockvault.modules.docking.stages import classifier, extractor
from dockvault.modules.docking.stages.anchor import build_anchor
from dockvault.modules.docking.stages.orchestrator import DockingPipeline

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


def discover_files(paths: list[Path], pattern: str) -> list[Path]:
    """Expand directories (recursively, by glob pattern) and keep plain files."""
    found: list[Path] = []
    for path in paths:
        if path.is_dir():
            found.extend(sorted(p for p in path.rglob(pattern) if p.is_file()))
        elif path.is_file():
            found.append(path)
        else:
            logger.warning("Path not found, skipping", path=str(path))
    return found


# ---------------------------------------------------------------------------
# Runners
# ---------------------------------------------------------------------------


def dry_run(files: list[Path]) -> Counter:
    tiers: Counter = Counter()
    for path in files:
        raw = RawSubmission(content=path.read_bytes(), source_label=path.name)
        try:
            record = classifier.classify(extractor.extract(raw))
        except ParseError as e:
            logger.warning("Skipped", file=path.name, error=str(e))
            tiers["rejected"] += 1
            continue
        tiers[record.tags[0]] += 1
        print(
            f"  {path.name}: {record.protein} / {record.ligand} "
            f"{record.binding_energy:.2f} kcal/mol [{classifier.describe_tier(record.tags[0])}] "
            f"confidence={record.confidence}"
        )
    return tiers


async def ingest(files: list[Path], pipeline: DockingPipeline) -> Counter:
    outcomes: Counter = Counter()

    for path in files:
        try:
            result = await pipeline.run(
                RawSubmission(content=path.read_bytes(), source_label=path.name)
            )
        except StorageFailure as e:
            logger.error("Not stored", file=path.name, error=str(e))
            outcomes["failed"] += 1
            continue

        if result.state == PipelineState.aborted:
            outcomes["rejected"] += 1
            continue

        record = result.record
        outcomes["stored"] += 1
        if record.solana_tx is not None:
            outcomes["anchored"] += 1
        logger.info(
            "Ingested",
            file=path.name,
            record_id=result.record_id,
            tier=classifier.describe_tier(record.tags[0]),
            confidence=record.confidence,
        )
    return outcomes


def main() -> None:
    parser = argparse.ArgumentParser(description="DockVault Batch Ingestion")
    parser.add_argument("paths", type=Path, nargs="+",
                        help="Docking output files or directories")
    parser.add_argument("--pattern", type=str, default="*",
                        help="Glob pattern used inside directories (default: *)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Extract and classify only; nothing is anchored or stored")
    args = parser.parse_args()

    # Records in a memory repository die with this process
    if not args.dry_run and settings.repository_backend == "memory":
        parser.error(
            "REPOSITORY_BACKEND is 'memory', so ingested records would be lost on exit. "
            "Set REPOSITORY_BACKEND=database or use --dry-run."
        )

    files = discover_files(args.paths, args.pattern)

    print(f"\n{'='*60}")
    print(f"  DOCKVAULT INGESTION")
    print(f"{'='*60}")
    print(f"  Files found:   {len(files)}")
    print(f"  Mode:          {'dry run' if args.dry_run else 'ingest'}")
    print(f"{'='*60}\n")

    if not files:
        print("No files found. Check the given paths.")
        return

    if args.dry_run:
        print("--- DRY RUN ---")
        summary = dry_run(files)
    else:
        pipeline = DockingPipeline(repository=get_repository(), anchor=build_anchor())
        summary = asyncio.run(ingest(files, pipeline))

    print(f"\n{'='*60}")
    print(f"  SUMMARY")
    print(f"{'='*60}")
    for key, val in sorted(summary.items()):
        print(f"  {key}: {val}")
    print(f"{'='*60}\n")


if __name__ == "__main__":
    main()
