"""Scoring service request and response payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

SUB_SCORE_FIELDS: tuple[str, ...] = (
    "semantic",
    "skill_match",
    "experience",
    "metrics",
    "complexity",
)


class SubScores(BaseModel):
    """Independently nullable sub-scores on a 0-100 scale.

    Range checks happen in the aggregator so that an out-of-range value from
    the scoring service surfaces as a named per-item error.
    """

    semantic: float | None = None
    skill_match: float | None = None
    experience: float | None = None
    metrics: float | None = None
    complexity: float | None = None

    model_config = ConfigDict(extra="forbid")

    def present(self) -> dict[str, float]:
        return {
            name: value
            for name in SUB_SCORE_FIELDS
            if (value := getattr(self, name)) is not None
        }


class JobContext(BaseModel):
    """Job-side inputs sent to the scoring service."""

    job_id: str
    title: str = ""
    description: str = ""
    required_skills: list[str] = Field(default_factory=list)
    nice_to_have_skills: list[str] = Field(default_factory=list)
    experience_years: float | None = None
    location: str | None = None


class ScoringRequest(BaseModel):
    """Full request for one resume against one job."""

    job: JobContext
    resume_id: str
    resume_text: str


class ScoringResponse(BaseModel):
    """Sub-scores and skill analysis returned by the scoring service."""

    sub_scores: SubScores = Field(default_factory=SubScores)
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)
    strong_signals: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
