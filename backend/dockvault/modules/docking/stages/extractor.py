"""DockVault Stage 1: Field Extractor.

Detects which docking tool produced a submission and pulls protein, ligand
and binding energy out of the text with that tool's ruleset.

Formats (checked in this order, first match wins):
  - vina:    "AutoDock Vina" / "VINA RESULT" banners, PDBQT remarks, mode table
  - gold:    "GOLD" banner / "Gold Score" lines
  - glide:   "Glide" banner, "Docking Score" / "Title" fields
  - generic: anything else; labelled fields only, tool left as "Unknown"

Nothing is inferred: a field without a matching pattern gets its sentinel.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from enum import Enum

import structlog

from dockvault.modules.docking.errors import ParseError
from dockvault.modules.docking.stage_schemas import (
    ENERGY_NOT_DETERMINED,
    NOT_DETERMINED,
    UNKNOWN_TOOL,
    ExtractedRecord,
    RawSubmission,
)

logger = structlog.get_logger()

# Anything shorter (after stripping whitespace) cannot hold a record
MIN_SUBMISSION_LENGTH = 10

# Signed decimal, leading digit optional: "-8.7", "12", "-.5"
NUMBER_PATTERN = r"(-?(?:\d+(?:\.\d+)?|\.\d+))"

# Horizontal whitespace only: a label never takes its value from the next line
_SP = r"[^\S\n]"
_SEP = rf"(?:{_SP}*[:=]{_SP}*|{_SP}+)"


class DockingFormat(str, Enum):
    vina = "vina"
    gold = "gold"
    glide = "glide"
    generic = "generic"


# ---------------------------------------------------------------------------
# Format detection
# ---------------------------------------------------------------------------

_SIGNATURES: tuple[tuple[DockingFormat, tuple[re.Pattern[str], ...]], ...] = (
    (
        DockingFormat.vina,
        (
            re.compile(r"autodock\s+vina", re.IGNORECASE),
            re.compile(r"vina\s+result", re.IGNORECASE),
        ),
    ),
    (
        DockingFormat.gold,
        (
            re.compile(r"\bGOLD\b"),
            re.compile(r"gold\s+score", re.IGNORECASE),
        ),
    ),
    (
        DockingFormat.glide,
        (re.compile(r"\bglide\b", re.IGNORECASE),),
    ),
)


def detect_format(text: str) -> DockingFormat:
    """Return the first format whose signature appears in the text."""
    for docking_format, signatures in _SIGNATURES:
        if any(signature.search(text) for signature in signatures):
            return docking_format
    return DockingFormat.generic


# ---------------------------------------------------------------------------
# Per-format rulesets
# ---------------------------------------------------------------------------


def _rx(pattern: str, flags: int = re.IGNORECASE) -> re.Pattern[str]:
    return re.compile(pattern, flags)


_RECEPTOR = _rx(rf"\breceptor{_SEP}(\w+)")
_PROTEIN = _rx(rf"\bprotein{_SEP}(\w+)")
_LIGAND = _rx(rf"\bligand{_SEP}(\w+)")

# Labelled energy forms shared by every ruleset, tried after tool-specific ones
_LABELLED_ENERGY = (
    _rx(rf"\benergy{_SEP}{NUMBER_PATTERN}"),
    _rx(rf"{NUMBER_PATTERN}{_SP}*kcal"),
    _rx(rf"\baffinity{_SP}*[:=]{_SP}*{NUMBER_PATTERN}"),
)


@dataclass(frozen=True)
class FormatParser:
    """Pure field extraction for one docking output layout."""

    tool: str
    protein: tuple[re.Pattern[str], ...]
    ligand: tuple[re.Pattern[str], ...]
    energy: tuple[re.Pattern[str], ...]

    def __call__(self, text: str) -> tuple[str, str, float, str]:
        protein = _first_group(text, self.protein) or NOT_DETERMINED
        ligand = _first_group(text, self.ligand) or NOT_DETERMINED
        energy_raw = _first_group(text, self.energy)
        energy = float(energy_raw) if energy_raw is not None else ENERGY_NOT_DETERMINED
        return protein, ligand, energy, self.tool


def _first_group(text: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


FORMAT_PARSERS: dict[DockingFormat, FormatParser] = {
    DockingFormat.vina: FormatParser(
        tool="AutoDock Vina",
        protein=(_RECEPTOR, _PROTEIN),
        ligand=(_LIGAND, _rx(rf"REMARK{_SP}+Name{_SP}*={_SP}*(\w+)")),
        energy=(
            _rx(rf"REMARK{_SP}+VINA{_SP}+RESULT:{_SP}+{NUMBER_PATTERN}"),
            # first row of the mode table: "   1       -8.7      0.000      0.000"
            _rx(rf"^{_SP}*1{_SP}+{NUMBER_PATTERN}\s", re.MULTILINE),
            *_LABELLED_ENERGY,
        ),
    ),
    DockingFormat.gold: FormatParser(
        tool="GOLD",
        protein=(_PROTEIN, _RECEPTOR),
        ligand=(_LIGAND,),
        energy=(
            _rx(rf"gold{_SP}*score{_SEP}{NUMBER_PATTERN}"),
            _rx(rf"\bfitness{_SEP}{NUMBER_PATTERN}"),
            *_LABELLED_ENERGY,
        ),
    ),
    DockingFormat.glide: FormatParser(
        tool="Glide",
        protein=(_RECEPTOR, _PROTEIN),
        ligand=(_rx(rf"\btitle{_SEP}(\w+)"), _LIGAND),
        energy=(
            _rx(rf"docking{_SP}+score{_SEP}{NUMBER_PATTERN}"),
            _rx(rf"\bglide{_SP}*score{_SEP}{NUMBER_PATTERN}"),
            *_LABELLED_ENERGY,
        ),
    ),
    DockingFormat.generic: FormatParser(
        tool=UNKNOWN_TOOL,
        protein=(_RECEPTOR, _PROTEIN),
        ligand=(_LIGAND,),
        energy=_LABELLED_ENERGY,
    ),
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def compute_content_hash(content: bytes) -> str:
    """SHA-256 hex digest of the raw submission bytes."""
    return hashlib.sha256(content).hexdigest()


def extract(raw: RawSubmission) -> ExtractedRecord:
    """Extract a docking record from a raw submission.

    The content hash is computed before anything else so that it is
    available (on the ParseError) even when the submission is rejected.

    Raises:
        ParseError: content is empty or too short to hold a record.
    """
    content = raw.content_bytes()
    file_hash = compute_content_hash(content)

    text = content.decode("utf-8", errors="replace")
    if len(text.strip()) < MIN_SUBMISSION_LENGTH:
        raise ParseError(
            f"Submission too short to contain a docking record "
            f"({len(text.strip())} < {MIN_SUBMISSION_LENGTH} characters).",
            content_hash=file_hash,
        )

    docking_format = detect_format(text)
    protein, ligand, energy, tool = FORMAT_PARSERS[docking_format](text)

    logger.info(
        "Docking submission extracted",
        source=raw.source_label,
        format=docking_format.value,
        file_hash=file_hash,
        protein=protein,
        ligand=ligand,
        binding_energy=energy,
    )

    return ExtractedRecord(
        protein=protein,
        ligand=ligand,
        binding_energy=energy,
        docking_tool=tool,
        file_hash=file_hash,
    )
