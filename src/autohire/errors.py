"""Error taxonomy for screening runs, scoring and pipeline stages."""

from __future__ import annotations

from enum import Enum


class AutoHireError(Exception):
    """Base class for all domain errors."""

    kind = "Error"

    def describe(self) -> str:
        """Return a ``"<Kind>: <message>"`` string for result entries."""
        return f"{self.kind}: {self}"


class InvalidRequest(AutoHireError, ValueError):
    """Raised when a caller supplies unusable input."""

    kind = "InvalidRequest"


class JobNotFound(InvalidRequest):
    """Raised when a job opening is missing or soft-deleted."""

    kind = "JobNotFound"

    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id!r}")
        self.job_id = job_id


class RunNotFound(InvalidRequest):
    """Raised when a screening run identifier is unknown."""

    kind = "RunNotFound"

    def __init__(self, run_id: str):
        super().__init__(f"Screening run not found: {run_id!r}")
        self.run_id = run_id


class ScoringErrorKind(str, Enum):
    """Machine-readable failure classes of the scoring service."""

    TIMEOUT = "Timeout"
    UNAVAILABLE = "Unavailable"
    INVALID_INPUT = "InvalidInput"


class ScoringError(AutoHireError):
    """Raised by scoring clients; recorded per item, never fatal to a run."""

    def __init__(self, kind: ScoringErrorKind, message: str):
        super().__init__(message)
        self.error_kind = ScoringErrorKind(kind)

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.error_kind.value


class ContentUnavailable(AutoHireError):
    """Raised when resume text cannot be retrieved or extracted."""

    kind = "ContentUnavailable"


class InsufficientData(AutoHireError):
    """Raised when no sub-score is available to build a composite."""

    kind = "InsufficientData"


class InvalidScore(AutoHireError, ValueError):
    """Raised when a score is not a number within [0, 100]."""

    kind = "InvalidScore"


class InvalidTransition(AutoHireError):
    """Raised when a pipeline stage move is not permitted."""

    kind = "InvalidTransition"


class PersistenceFault(AutoHireError):
    """Raised when the storage layer fails during a run."""

    kind = "PersistenceFault"


class CodeGenerationExhausted(AutoHireError):
    """Raised when no free job code was found within the retry cap."""

    kind = "CodeGenerationExhausted"


__all__ = [
    "AutoHireError",
    "CodeGenerationExhausted",
    "ContentUnavailable",
    "InsufficientData",
    "InvalidRequest",
    "InvalidScore",
    "InvalidTransition",
    "JobNotFound",
    "PersistenceFault",
    "RunNotFound",
    "ScoringError",
    "ScoringErrorKind",
]
