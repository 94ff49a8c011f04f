"""DockVault Pipeline Stages.

4-stage deterministic pipeline for docking result submissions:
  Stage 1 — Extractor:    format detection + per-tool field rulesets
  Stage 2 — Classifier:   energy tier, tool and identification tags + confidence
  Stage 3 — Anchor:       canonical digest + optional ledger submission
  Stage 4 — Orchestrator: sequencing and persistence (no stage skippable)
"""
