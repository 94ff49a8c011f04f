"""DockVault Stage 2: Rule-based Classifier.

Tags an extracted docking record and scores how completely it was
identified. No model, no heuristics beyond the fixed tables below: the same
ExtractedRecord always yields the same tags in the same order.

Tag order:
  1. energy tier (exactly one)
  2. tool
  3. protein identification
  4. ligand identification
"""

from __future__ import annotations

import re

from dockvault.modules.docking.errors import MissingUpstreamData
from dockvault.modules.docking.stage_schemas import (
    NOT_DETERMINED,
    UNKNOWN_TOOL,
    ClassifiedRecord,
    ExtractedRecord,
)

# (exclusive upper bound, tag) in ascending order; anything >= -4 is very weak.
# Half-open intervals: -10 is "strong", -8 is "moderate", and so on.
_ENERGY_TIERS: tuple[tuple[float, str], ...] = (
    (-10.0, "very_strong_binder"),
    (-8.0, "strong_binder"),
    (-6.0, "moderate_binder"),
    (-4.0, "weak_binder"),
)
_WEAKEST_TIER = "very_weak_binder"

TIER_TAGS: tuple[str, ...] = tuple(tag for _, tag in _ENERGY_TIERS) + (_WEAKEST_TIER,)

_TIER_LABELS: dict[str, str] = {
    "very_strong_binder": "Very Strong Binding",
    "strong_binder": "Strong Binding",
    "moderate_binder": "Moderate Binding",
    "weak_binder": "Weak Binding",
    "very_weak_binder": "Very Weak Binding",
}

# Confidence evidence weights
_PROTEIN_WEIGHT = 0.3
_LIGAND_WEIGHT = 0.3
_ENERGY_WEIGHT = 0.2
_TOOL_WEIGHT = 0.2

_WHITESPACE = re.compile(r"\s+")


def energy_tier(energy: float) -> str:
    """Map a binding energy (kcal/mol) to its tier tag."""
    for upper_bound, tag in _ENERGY_TIERS:
        if energy < upper_bound:
            return tag
    return _WEAKEST_TIER


def describe_tier(tag: str) -> str:
    """Human-readable label for a tier tag."""
    return _TIER_LABELS.get(tag, tag)


def tool_tag(tool: str) -> str:
    normalized = _WHITESPACE.sub("_", tool.strip().lower())
    return f"tool_{normalized}"


def compute_confidence(record: ExtractedRecord) -> float:
    """Additive completeness score in [0, 1]."""
    score = 0.0
    if record.protein != NOT_DETERMINED:
        score += _PROTEIN_WEIGHT
    if record.ligand != NOT_DETERMINED:
        score += _LIGAND_WEIGHT
    # A zero energy is the not-determined sentinel and earns nothing
    if record.binding_energy < 0:
        score += _ENERGY_WEIGHT
    if record.docking_tool != UNKNOWN_TOOL:
        score += _TOOL_WEIGHT
    return round(min(score, 1.0), 2)


def classify(record: ExtractedRecord) -> ClassifiedRecord:
    """Derive tags and confidence for an extracted record.

    Raises:
        MissingUpstreamData: called with anything but an ExtractedRecord.
    """
    if not isinstance(record, ExtractedRecord):
        raise MissingUpstreamData("Classifier requires an ExtractedRecord from the extractor.")

    tags: list[str] = [
        energy_tier(record.binding_energy),
        tool_tag(record.docking_tool),
        "protein_identified" if record.protein != NOT_DETERMINED else "protein_unknown",
        "ligand_identified" if record.ligand != NOT_DETERMINED else "ligand_unknown",
    ]

    return ClassifiedRecord(
        **record.model_dump(include=set(ExtractedRecord.model_fields)),
        tags=tuple(dict.fromkeys(tags)),
        confidence=compute_confidence(record),
    )
