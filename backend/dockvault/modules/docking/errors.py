"""Docking pipeline exceptions.

ParseError and StorageFailure are fatal for a pipeline run. LedgerUnavailable
never leaves the anchor stage; it degrades the ledger reference to None.
MissingUpstreamData signals a stage invoked out of order.
"""

from __future__ import annotations


class DockingError(Exception):
    """Base exception for docking pipeline failures."""

    def __init__(self, message: str, *, code: str = "DOCKING_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ParseError(DockingError):
    """Submission is too short or malformed to hold any docking record."""

    def __init__(self, message: str, *, content_hash: str) -> None:
        super().__init__(message, code="PARSE_ERROR")
        self.content_hash = content_hash


class MissingUpstreamData(DockingError):
    """A stage was invoked without the previous stage's output."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="MISSING_UPSTREAM_DATA")


class LedgerUnavailable(DockingError):
    """Ledger is not configured or rejected/failed the submission."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="LEDGER_UNAVAILABLE")


class StorageFailure(DockingError):
    """The repository could not durably append a record."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="STORAGE_FAILURE")
