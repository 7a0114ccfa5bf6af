"""Dependency injection container for the screening engine."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from dependency_injector import containers, providers

from .adapters import KeywordScoringClient, KeywordScoringConfig, LocalFileContentProvider
from .audit import AuditLogger, NullAuditLogger
from .coordinator import ScreeningRunCoordinator
from .core import PipelineStageTracker, ScoreAggregator
from .db import Database
from .jobs import JobOpeningService
from .schemas.config import load_config
from .scoring import HTTPScoringClient
from .stages import StageService


class ScreeningContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    database = providers.Singleton(
        Database,
        url=config.database.url,
        echo=config.database.echo,
    )

    aggregator = providers.Singleton(
        ScoreAggregator,
        fit_thresholds=config.aggregator.fit_thresholds,
        screen_in_threshold=config.aggregator.screen_in_threshold,
    )

    stage_tracker = providers.Singleton(PipelineStageTracker)

    content_provider = providers.Singleton(
        LocalFileContentProvider,
        base_dir=config.content.base_dir,
        max_chars=config.content.max_chars,
    )

    scoring_client = providers.Singleton(
        KeywordScoringClient,
        config=providers.Factory(
            KeywordScoringConfig,
            min_similarity=config.scoring.min_similarity,
        ),
    )

    audit_logger = providers.Singleton(NullAuditLogger)

    job_service = providers.Singleton(
        JobOpeningService,
        database=database,
        max_code_attempts=config.job_codes.max_attempts,
    )

    stage_service = providers.Singleton(
        StageService,
        database=database,
        tracker=stage_tracker,
        audit_logger=audit_logger,
    )

    coordinator = providers.Singleton(
        ScreeningRunCoordinator,
        database=database,
        scoring_client=scoring_client,
        content_provider=content_provider,
        aggregator=aggregator,
        max_workers=config.coordinator.max_workers,
        scoring_timeout_seconds=config.coordinator.scoring_timeout_seconds,
        reject_concurrent_runs=config.coordinator.reject_concurrent_runs,
        audit_logger=audit_logger,
    )


def create_container(
    *,
    settings: dict[str, Any] | None = None,
    audit_log: Path | None = None,
) -> ScreeningContainer:
    """Instantiate the container from validated settings."""

    app_config = load_config(settings or {})
    container = ScreeningContainer()
    container.config.from_dict(app_config.to_settings())

    if app_config.scoring.endpoint:
        container.scoring_client.override(
            providers.Singleton(
                HTTPScoringClient,
                endpoint=app_config.scoring.endpoint,
                api_key=app_config.scoring.api_key,
            )
        )

    if audit_log is not None:
        container.audit_logger.override(providers.Singleton(AuditLogger, audit_log))

    return container
