"""Candidate filter criteria and the paged result they produce."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .resume import PipelineStage, Resume, ResumeStatus, Score

CandidateSortField = Literal[
    "ai_score",
    "semantic_score",
    "skill_match_score",
    "experience_score",
    "created_at",
    "candidate_name",
]


class CandidateFilter(BaseModel):
    """Criteria for listing scored candidates of one job.

    ``target_score`` is a shorthand for "at least this score" and takes
    precedence over ``min_score``/``max_score``.
    """

    target_score: Score | None = None
    min_score: Score | None = None
    max_score: Score | None = None
    status: ResumeStatus | None = None
    pipeline_stage: PipelineStage | None = None
    skill: str | None = None
    sort_by: CandidateSortField = "ai_score"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=200)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_bounds(self) -> "CandidateFilter":
        if self.min_score is not None and self.max_score is not None and self.min_score > self.max_score:
            raise ValueError("min_score must not exceed max_score")
        if self.skill is not None:
            self.skill = self.skill.strip() or None
        return self

    def score_bounds(self) -> tuple[float | None, float | None]:
        if self.target_score is not None:
            return self.target_score, None
        return self.min_score, self.max_score

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ScoreDistribution(BaseModel):
    above_90: int = 0
    above_80: int = 0
    above_70: int = 0
    below_70: int = 0


class CandidatePage(BaseModel):
    """One page of filtered candidates plus summary figures for that page."""

    candidates: list[Resume] = Field(default_factory=list)
    total: int
    page: int
    limit: int
    pages: int
    score_distribution: ScoreDistribution = Field(default_factory=ScoreDistribution)
    pipeline_distribution: dict[str, int] = Field(default_factory=dict)
    average_score: float = 0.0

    @classmethod
    def build(cls, candidates: list[Resume], *, total: int, criteria: CandidateFilter) -> "CandidatePage":
        distribution = ScoreDistribution()
        pipeline: dict[str, int] = {}
        for candidate in candidates:
            score = candidate.ai_score or 0.0
            if score >= 90:
                distribution.above_90 += 1
            elif score >= 80:
                distribution.above_80 += 1
            elif score >= 70:
                distribution.above_70 += 1
            else:
                distribution.below_70 += 1
            pipeline[candidate.pipeline_stage] = pipeline.get(candidate.pipeline_stage, 0) + 1
        average = sum(c.ai_score or 0.0 for c in candidates) / len(candidates) if candidates else 0.0
        return cls(
            candidates=candidates,
            total=total,
            page=criteria.page,
            limit=criteria.limit,
            pages=-(-total // criteria.limit),
            score_distribution=distribution,
            pipeline_distribution=pipeline,
            average_score=round(average, 2),
        )


__all__ = ["CandidateFilter", "CandidatePage", "CandidateSortField", "ScoreDistribution"]
