"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator


class FitThresholds(BaseModel):
    """Lower bounds of each fit level; anything below ``weak`` is ``poor``."""

    strong: float = Field(default=75.0, ge=0, le=100)
    moderate: float = Field(default=60.0, ge=0, le=100)
    weak: float = Field(default=45.0, ge=0, le=100)

    @model_validator(mode="after")
    def _check_order(self) -> "FitThresholds":
        if not self.strong > self.moderate > self.weak:
            raise ValueError("fit thresholds must satisfy strong > moderate > weak")
        return self


class AggregatorConfig(BaseModel):
    fit_thresholds: FitThresholds = Field(default_factory=FitThresholds)
    screen_in_threshold: float = Field(default=60.0, ge=0, le=100)

    @model_validator(mode="after")
    def _check_screen_in(self) -> "AggregatorConfig":
        if self.screen_in_threshold < self.fit_thresholds.moderate:
            raise ValueError("screen_in_threshold must be >= the moderate fit threshold")
        return self


class CoordinatorConfig(BaseModel):
    max_workers: int = Field(default=4, ge=1)
    scoring_timeout_seconds: float = Field(default=30.0, gt=0)
    reject_concurrent_runs: bool = False


class JobCodeConfig(BaseModel):
    max_attempts: int = Field(default=20, ge=1)


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///autohire.db"
    echo: bool = False


class ScoringConfig(BaseModel):
    endpoint: str | None = None
    api_key: str | None = None
    min_similarity: float = Field(default=85.0, ge=0, le=100)


class ContentConfig(BaseModel):
    base_dir: str = "."
    max_chars: int = Field(default=18000, ge=1)


class AppConfig(BaseModel):
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)
    job_codes: JobCodeConfig = Field(default_factory=JobCodeConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    log_level: str = "INFO"

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(mode="python")


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    return AppConfig.model_validate(raw)
