"""Resume schema and its two state vocabularies."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

ResumeStatus = Literal["uploaded", "processing", "scored", "screened-in", "screened-out"]

PipelineStage = Literal["screening", "assessment", "interview", "offer", "hired", "rejected"]

RESUME_STATUSES: tuple[str, ...] = (
    "uploaded",
    "processing",
    "scored",
    "screened-in",
    "screened-out",
)

SCREENING_OUTCOMES: tuple[str, ...] = ("screened-in", "screened-out")

PIPELINE_STAGES: tuple[str, ...] = (
    "screening",
    "assessment",
    "interview",
    "offer",
    "hired",
    "rejected",
)

Score = Annotated[float, Field(ge=0, le=100)]


class ResumeSubmission(BaseModel):
    """Fields supplied when a candidate submits a resume."""

    candidate_id: str
    job_id: str
    candidate_name: str = ""
    email: str | None = None
    file_ref: str
    original_name: str | None = None
    mime_type: str | None = None

    model_config = ConfigDict(extra="forbid")


class Resume(ResumeSubmission):
    """Persisted resume with its screening and pipeline state."""

    id: str
    status: ResumeStatus = "uploaded"
    pipeline_stage: PipelineStage = "screening"
    ai_score: Score | None = None
    semantic_score: Score | None = None
    skill_match_score: Score | None = None
    experience_score: Score | None = None
    metrics_score: Score | None = None
    complexity_score: Score | None = None
    score: Score | None = None
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    ml_processed: bool = False
    ml_processed_at: datetime | None = None
    ml_error: str | None = None
    is_deleted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(extra="ignore", from_attributes=True)
