"""Screening run record schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

RunStatus = Literal["running", "completed", "failed"]


class RunResultEntry(BaseModel):
    """Point-in-time outcome of one resume within a run."""

    resume_id: str
    candidate_id: str | None = None
    candidate_name: str | None = None
    score: float | None = None
    fit_level: str | None = None
    status: str | None = None
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)
    strong_signals: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AIScreenRun(BaseModel):
    """Durable record of one batch screening invocation."""

    id: str
    job_id: str
    total: int = 0
    processed: int = 0
    screened_in: int = 0
    screened_out: int = 0
    status: RunStatus = "running"
    done: bool = False
    error: str | None = None
    results: list[RunResultEntry] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.processed / self.total * 100)

    def progress(self) -> dict[str, object]:
        """Return the lightweight polling view of the run."""
        return {
            "run_id": self.id,
            "job_id": self.job_id,
            "total": self.total,
            "processed": self.processed,
            "percent": self.percent,
            "status": self.status,
            "done": self.done,
            "error": self.error,
        }
