"""Pydantic schema definitions shared across the screening engine."""

from __future__ import annotations

from .candidates import CandidateFilter, CandidatePage
from .config import AppConfig, load_config
from .job import EligibilityCriteria, JobOpening, JobOpeningDraft, SalaryRange
from .resume import (
    PIPELINE_STAGES,
    RESUME_STATUSES,
    SCREENING_OUTCOMES,
    PipelineStage,
    Resume,
    ResumeStatus,
    ResumeSubmission,
)
from .run import AIScreenRun, RunResultEntry, RunStatus
from .scoring import JobContext, ScoringRequest, ScoringResponse, SubScores

__all__ = [
    "AIScreenRun",
    "AppConfig",
    "CandidateFilter",
    "CandidatePage",
    "EligibilityCriteria",
    "JobContext",
    "JobOpening",
    "JobOpeningDraft",
    "PIPELINE_STAGES",
    "PipelineStage",
    "RESUME_STATUSES",
    "Resume",
    "ResumeStatus",
    "ResumeSubmission",
    "RunResultEntry",
    "RunStatus",
    "SCREENING_OUTCOMES",
    "SalaryRange",
    "ScoringRequest",
    "ScoringResponse",
    "SubScores",
    "load_config",
]
