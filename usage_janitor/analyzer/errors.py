"""Error kinds raised and recorded during usage analysis.

Only InvalidRoot aborts a run. Everything else is recorded against the
entity or file it concerns and surfaced in the final report.
"""
from typing import Optional


class JanitorError(Exception):
    """Base class for all usage analysis errors."""


class InvalidRoot(JanitorError, ValueError):
    """Root path is missing, not a directory, or unreadable."""

    def __init__(self, root, reason: str = "not an existing readable directory"):
        self.root = str(root)
        self.reason = reason
        super().__init__(f"Invalid root {self.root}: {reason}")


class InvalidNeedle(JanitorError, ValueError):
    """A needle was built with no patterns or with malformed fields."""


class ScanFileUnreadable(JanitorError, OSError):
    """A single file could not be read as text."""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Cannot read {self.path}: {reason}")


class AnalysisFailure(JanitorError):
    """Any failure while analyzing one entity.

    Keeps the original exception in ``cause`` so reports can show it.
    """

    def __init__(self, entity_name: str, cause: Optional[BaseException] = None):
        self.entity_name = entity_name
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause is not None else "unknown error"
        super().__init__(f"Analysis of '{entity_name}' failed ({detail})")

    def to_dict(self) -> dict:
        return {
            'entity': self.entity_name,
            'type': type(self.cause).__name__ if self.cause is not None else None,
            'message': str(self.cause) if self.cause is not None else str(self),
        }
