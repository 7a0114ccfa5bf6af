"""Core screening engine components."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

# NOTE: keep imports explicit for export clarity.
from ..schemas.scoring import ScoringRequest, ScoringResponse
from .aggregator import AggregateResult, FitLevel, ScoreAggregator
from .job_code import JobCodeGenerator, is_valid_job_code
from .pipeline_stage import PipelineStageTracker, StageTransition


@runtime_checkable
class ScoringClient(Protocol):
    """Contract of the external resume scoring service."""

    def score(self, request: ScoringRequest, *, timeout: float) -> ScoringResponse:
        """Return sub-scores for the resume or raise ``ScoringError``.

        Implementations must give up after ``timeout`` seconds and raise a
        ``ScoringError`` of kind ``Timeout``.
        """


@runtime_checkable
class ResumeContentProvider(Protocol):
    """Resolve a stored resume reference to its text."""

    def fetch_text(self, file_ref: str) -> str:
        """Return extractable text or raise ``ContentUnavailable``."""


__all__ = [
    "AggregateResult",
    "FitLevel",
    "JobCodeGenerator",
    "PipelineStageTracker",
    "ResumeContentProvider",
    "ScoreAggregator",
    "ScoringClient",
    "StageTransition",
    "is_valid_job_code",
]
