"""Pipeline stage actions backed by the stage tracker."""

from __future__ import annotations

from typing import Iterable

import structlog
from sqlalchemy import update

from .audit import AuditLogger, NullAuditLogger
from .core.pipeline_stage import PipelineStageTracker, StageTransition
from .db import Database, JobRepository, ResumeRecord, ResumeRepository
from .db.models import utcnow
from .errors import InvalidRequest, InvalidTransition, JobNotFound
from .schemas.resume import PIPELINE_STAGES, SCREENING_OUTCOMES, Resume


class StageService:
    """Move resumes through pipeline stages, all-or-nothing per batch."""

    def __init__(
        self,
        *,
        database: Database,
        tracker: PipelineStageTracker | None = None,
        audit_logger: AuditLogger | NullAuditLogger | None = None,
    ) -> None:
        self._database = database
        self._tracker = tracker or PipelineStageTracker()
        self._audit = audit_logger or NullAuditLogger()
        self._logger = structlog.get_logger(__name__)

    def advance(
        self,
        resume_ids: Iterable[str],
        target_stage: str,
        *,
        skip: bool = False,
        actor: str | None = None,
    ) -> list[Resume]:
        """Move every resume to ``target_stage`` or none of them.

        Raises ``InvalidTransition`` for the first resume whose move is not
        allowed; no resume changes in that case.
        """
        ids = _unique(resume_ids)
        with self._database.session_scope() as session:
            records = self._load(ResumeRepository(session), ids)
            transitions: list[tuple[ResumeRecord, StageTransition]] = []
            for record in records:
                try:
                    transition = self._tracker.check(
                        current=record.pipeline_stage,
                        target=target_stage,
                        status=record.status,
                        skip=skip,
                    )
                except InvalidTransition as exc:
                    raise InvalidTransition(f"resume {record.id}: {exc}") from exc
                transitions.append((record, transition))

            for record, transition in transitions:
                # Compare-and-set against concurrent stage changes.
                result = session.execute(
                    update(ResumeRecord)
                    .where(
                        ResumeRecord.id == record.id,
                        ResumeRecord.pipeline_stage == transition.from_stage,
                    )
                    .values(pipeline_stage=transition.to_stage, updated_at=utcnow())
                )
                if result.rowcount != 1:
                    raise InvalidTransition(
                        f"resume {record.id}: stage changed concurrently, expected {transition.from_stage!r}"
                    )
            session.expire_all()
            updated = [Resume.model_validate(r) for r in self._load(ResumeRepository(session), ids)]

        for record, transition in transitions:
            self._logger.info(
                "pipeline_stage.transition",
                resume_id=record.id,
                from_stage=transition.from_stage,
                to_stage=transition.to_stage,
                skipped=list(transition.skipped),
            )
            self._audit.append(
                "pipeline_stage.skip" if transition.is_skip else "pipeline_stage.transition",
                {
                    "resume_id": record.id,
                    "job_id": record.job_id,
                    "from_stage": transition.from_stage,
                    "to_stage": transition.to_stage,
                    "skipped": list(transition.skipped),
                    "actor": actor,
                },
            )
        return updated

    def reject(self, resume_ids: Iterable[str], *, actor: str | None = None) -> list[Resume]:
        return self.advance(resume_ids, "rejected", actor=actor)

    def set_screening_status(
        self,
        resume_ids: Iterable[str],
        status: str,
        *,
        actor: str | None = None,
    ) -> list[Resume]:
        """Manually override the screening outcome of resumes still in ``screening``."""
        if status not in SCREENING_OUTCOMES:
            raise InvalidRequest(f"status must be one of {list(SCREENING_OUTCOMES)}, got {status!r}")

        ids = _unique(resume_ids)
        with self._database.session_scope() as session:
            records = self._load(ResumeRepository(session), ids)
            for record in records:
                if record.pipeline_stage != "screening":
                    raise InvalidTransition(
                        f"resume {record.id}: screening status is fixed once in {record.pipeline_stage!r}"
                    )
            previous = {record.id: record.status for record in records}
            for record in records:
                record.status = status
            session.flush()
            updated = [Resume.model_validate(r) for r in records]

        for resume in updated:
            self._audit.append(
                "screening_status.override",
                {
                    "resume_id": resume.id,
                    "job_id": resume.job_id,
                    "from_status": previous[resume.id],
                    "to_status": status,
                    "actor": actor,
                },
            )
        return updated

    def list_by_stage(self, job_id: str, stage: str) -> list[Resume]:
        if stage not in PIPELINE_STAGES:
            raise InvalidRequest(f"unknown stage {stage!r}")
        with self._database.session_scope() as session:
            if JobRepository(session).get(job_id) is None:
                raise JobNotFound(job_id)
            return [Resume.model_validate(r) for r in ResumeRepository(session).list_by_stage(job_id, stage)]

    @staticmethod
    def _load(repo: ResumeRepository, ids: list[str]) -> list[ResumeRecord]:
        if not ids:
            raise InvalidRequest("resume_ids must not be empty")
        records = {record.id: record for record in repo.get_many(ids)}
        missing = [resume_id for resume_id in ids if resume_id not in records]
        if missing:
            raise InvalidRequest(f"resumes not found: {missing}")
        return [records[resume_id] for resume_id in ids]


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


__all__ = ["StageService"]
