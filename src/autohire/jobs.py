"""Job opening service: unique codes, edits, soft deletion and candidate listing."""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from .core.job_code import JobCodeGenerator
from .db import Database, JobOpeningRecord, JobRepository, ResumeRecord, ResumeRepository
from .errors import CodeGenerationExhausted, InvalidRequest, JobNotFound
from .schemas.candidates import CandidateFilter, CandidatePage
from .schemas.job import JobOpening, JobOpeningDraft
from .schemas.resume import Resume, ResumeSubmission

_IMMUTABLE_FIELDS = frozenset({"id", "job_code", "is_deleted", "created_at"})


class JobOpeningService:
    """Create and maintain job openings and the resumes submitted to them."""

    def __init__(self, *, database: Database, max_code_attempts: int = 20) -> None:
        self._database = database
        self._max_code_attempts = max_code_attempts
        self._logger = structlog.get_logger(__name__)

    def code_generator(self) -> JobCodeGenerator:
        return JobCodeGenerator(self._code_exists, max_attempts=self._max_code_attempts)

    def create_job(
        self,
        draft: JobOpeningDraft | dict[str, Any],
        *,
        generator: JobCodeGenerator | None = None,
    ) -> JobOpening:
        """Persist a new job with a freshly generated 7-digit code.

        The generator's pre-check narrows collisions; the unique constraint
        decides. Each constraint violation triggers a new draw, up to the
        configured cap.
        """
        draft = JobOpeningDraft.model_validate(draft)
        generator = generator or self.code_generator()
        values = draft.model_dump(mode="json")

        for attempt in range(1, self._max_code_attempts + 1):
            code = generator.generate()
            try:
                with self._database.session_scope() as session:
                    record = JobRepository(session).add(JobOpeningRecord(job_code=code, **values))
                    job = JobOpening.model_validate(record)
            except IntegrityError:
                self._logger.info("job_code.constraint_violation", code=code, attempt=attempt)
                continue
            self._logger.info("job.created", job_id=job.id, job_code=job.job_code)
            return job

        raise CodeGenerationExhausted(
            f"job code still colliding after {self._max_code_attempts} inserts"
        )

    def get_job(self, job_id: str, *, include_deleted: bool = False) -> JobOpening:
        with self._database.session_scope() as session:
            record = JobRepository(session).get(job_id, include_deleted=include_deleted)
            if record is None:
                raise JobNotFound(job_id)
            return JobOpening.model_validate(record)

    def get_job_by_code(self, job_code: str) -> JobOpening:
        with self._database.session_scope() as session:
            record = JobRepository(session).get_by_code(job_code)
            if record is None or record.is_deleted:
                raise JobNotFound(job_code)
            return JobOpening.model_validate(record)

    def update_job(self, job_id: str, changes: dict[str, Any]) -> JobOpening:
        forbidden = _IMMUTABLE_FIELDS.intersection(changes)
        if forbidden:
            raise InvalidRequest(f"fields cannot be edited: {sorted(forbidden)}")
        unknown = set(changes) - set(JobOpeningDraft.model_fields)
        if unknown:
            raise InvalidRequest(f"unknown job fields: {sorted(unknown)}")

        with self._database.session_scope() as session:
            record = JobRepository(session).get(job_id)
            if record is None:
                raise JobNotFound(job_id)
            merged = JobOpeningDraft.model_validate(
                {**JobOpening.model_validate(record).model_dump(include=set(JobOpeningDraft.model_fields)), **changes}
            )
            for field, value in merged.model_dump(mode="json").items():
                setattr(record, field, value)
            session.flush()
            return JobOpening.model_validate(record)

    def close_job(self, job_id: str) -> JobOpening:
        with self._database.session_scope() as session:
            record = JobRepository(session).get(job_id)
            if record is None:
                raise JobNotFound(job_id)
            record.status = "closed"
            session.flush()
            return JobOpening.model_validate(record)

    def soft_delete_job(self, job_id: str) -> None:
        with self._database.session_scope() as session:
            record = JobRepository(session).get(job_id)
            if record is None:
                raise JobNotFound(job_id)
            record.is_deleted = True
        self._logger.info("job.soft_deleted", job_id=job_id)

    def submit_resume(self, submission: ResumeSubmission | dict[str, Any]) -> Resume:
        submission = ResumeSubmission.model_validate(submission)
        with self._database.session_scope() as session:
            if JobRepository(session).get(submission.job_id) is None:
                raise JobNotFound(submission.job_id)
            record = ResumeRepository(session).add(ResumeRecord(**submission.model_dump()))
            return Resume.model_validate(record)

    def get_resume(self, resume_id: str) -> Resume:
        with self._database.session_scope() as session:
            record = ResumeRepository(session).get(resume_id)
            if record is None:
                raise InvalidRequest(f"Resume not found: {resume_id!r}")
            return Resume.model_validate(record)

    def list_resumes(self, job_id: str) -> list[Resume]:
        with self._database.session_scope() as session:
            return [Resume.model_validate(r) for r in ResumeRepository(session).list_for_job(job_id)]

    def filter_candidates(
        self, job_id: str, criteria: CandidateFilter | dict[str, Any] | None = None
    ) -> CandidatePage:
        """List scored candidates of a job by score range, status, stage or skill.

        Only resumes the scoring service processed successfully are listed.
        Results are sorted on ``sort_by`` (unscored values last) and paged.
        """
        try:
            criteria = CandidateFilter.model_validate(criteria or {})
        except ValidationError as exc:
            raise InvalidRequest(f"invalid candidate filter: {exc}") from exc
        min_score, max_score = criteria.score_bounds()

        with self._database.session_scope() as session:
            if JobRepository(session).get(job_id) is None:
                raise JobNotFound(job_id)
            records, total = ResumeRepository(session).filter_scored(
                job_id,
                min_score=min_score,
                max_score=max_score,
                status=criteria.status,
                pipeline_stage=criteria.pipeline_stage,
                skill=criteria.skill,
                sort_by=criteria.sort_by,
                descending=criteria.sort_order == "desc",
                offset=criteria.offset,
                limit=criteria.limit,
            )
            candidates = [Resume.model_validate(r) for r in records]

        self._logger.info(
            "candidates.filtered", job_id=job_id, returned=len(candidates), total=total, page=criteria.page
        )
        return CandidatePage.build(candidates, total=total, criteria=criteria)

    def soft_delete_resume(self, resume_id: str) -> None:
        with self._database.session_scope() as session:
            if ResumeRepository(session).soft_delete(resume_id) != 1:
                raise InvalidRequest(f"Resume not found: {resume_id!r}")

    def _code_exists(self, code: str) -> bool:
        with self._database.session_scope() as session:
            return JobRepository(session).code_exists(code)


__all__ = ["JobOpeningService"]
