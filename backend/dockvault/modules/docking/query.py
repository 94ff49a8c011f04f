"""Docking query engine — free-text filter parsing and evaluation.

Parsing is lexical only. Each dimension takes at most one value, the first
match wins, and text that matches nothing yields an empty filter (which
matches every record). Evaluation is a strict conjunction that keeps the
repository's insertion order.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog

from dockvault.modules.docking.repository import RecordRepository
from dockvault.modules.docking.schemas import QueryFilter, QueryResponse
from dockvault.modules.docking.stage_schemas import StoredRecord
from dockvault.modules.docking.stages.extractor import NUMBER_PATTERN

logger = structlog.get_logger()


_PROTEIN = re.compile(r"\bprotein\s+(\w+)", re.IGNORECASE)
_LIGAND = re.compile(r"\bligand\s+(\w+)", re.IGNORECASE)

# Upper bound first: "below" beats "less than" / "<" / "<="
_MAX_ENERGY = (
    re.compile(r"\bbelow\s+" + NUMBER_PATTERN, re.IGNORECASE),
    re.compile(r"(?:\bless\s+than|<=?)\s*" + NUMBER_PATTERN, re.IGNORECASE),
)
_MIN_ENERGY = (
    re.compile(r"\babove\s+" + NUMBER_PATTERN, re.IGNORECASE),
    re.compile(r"(?:\bgreater\s+than|>=?)\s*" + NUMBER_PATTERN, re.IGNORECASE),
)

_TOOLS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(?:autodock|vina)\b", re.IGNORECASE), "AutoDock Vina"),
    (re.compile(r"\bgold\b", re.IGNORECASE), "GOLD"),
    (re.compile(r"\bglide\b", re.IGNORECASE), "Glide"),
)

_TIER_KEYWORDS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bvery\s+strong\s+binders?\b", re.IGNORECASE), "very_strong_binder"),
    (re.compile(r"(?<!very )\bstrong\s+binders?\b", re.IGNORECASE), "strong_binder"),
    (re.compile(r"\bmoderate\s+binders?\b", re.IGNORECASE), "moderate_binder"),
    (re.compile(r"(?<!very )\bweak\s+binders?\b", re.IGNORECASE), "weak_binder"),
    (re.compile(r"\bvery\s+weak\s+binders?\b", re.IGNORECASE), "very_weak_binder"),
)


def _first_number(text: str, patterns: Iterable[re.Pattern[str]]) -> float | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None


def parse_filter(text: str) -> QueryFilter:
    """Parse a free-text query into a QueryFilter."""
    # Single spaces only, so the "very " lookbehinds see every spelling
    text = " ".join(text.split())

    protein_match = _PROTEIN.search(text)
    ligand_match = _LIGAND.search(text)

    tool = next((name for pattern, name in _TOOLS if pattern.search(text)), None)
    tags = {tag for pattern, tag in _TIER_KEYWORDS if pattern.search(text)}

    return QueryFilter(
        protein=protein_match.group(1).upper() if protein_match else None,
        ligand=ligand_match.group(1).upper() if ligand_match else None,
        min_energy=_first_number(text, _MIN_ENERGY),
        max_energy=_first_number(text, _MAX_ENERGY),
        tool=tool,
        tags=tags or None,
    )


def matches(query: QueryFilter, record: StoredRecord) -> bool:
    if query.protein is not None and query.protein.lower() not in record.protein.lower():
        return False
    if query.ligand is not None and query.ligand.lower() not in record.ligand.lower():
        return False
    if query.min_energy is not None and record.binding_energy < query.min_energy:
        return False
    if query.max_energy is not None and record.binding_energy > query.max_energy:
        return False
    if query.tool is not None and query.tool.lower() not in record.docking_tool.lower():
        return False
    if query.tags and not any(tag in record.tags for tag in query.tags):
        return False
    return True


def evaluate(query: QueryFilter, records: Iterable[StoredRecord]) -> list[StoredRecord]:
    """Records matching every present filter field, in the given order."""
    return [record for record in records if matches(query, record)]


async def run_query(text: str, repository: RecordRepository) -> QueryResponse:
    """Parse a free-text query and evaluate it against a repository snapshot."""
    query = parse_filter(text)
    results = evaluate(query, await repository.list_all())

    logger.info(
        "Docking query evaluated",
        filters=query.model_dump(exclude_none=True),
        count=len(results),
    )

    return QueryResponse(query=text, filter=query, count=len(results), results=results)
