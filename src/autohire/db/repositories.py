"""Query and update helpers over the screening records."""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional

import structlog
from sqlalchemy import Text, cast, func, select, update
from sqlalchemy.orm import Session

from .models import JobOpeningRecord, ResumeRecord, ScreenRunRecord, ScreenRunResultRecord, utcnow

logger = structlog.get_logger(__name__)

_SORT_COLUMNS = {
    'ai_score': ResumeRecord.ai_score,
    'semantic_score': ResumeRecord.semantic_score,
    'skill_match_score': ResumeRecord.skill_match_score,
    'experience_score': ResumeRecord.experience_score,
    'created_at': ResumeRecord.created_at,
    'candidate_name': ResumeRecord.candidate_name,
}


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


class BaseRepository:
    def __init__(self, db: Session):
        self.db = db


class JobRepository(BaseRepository):
    def get(self, job_id: str, include_deleted: bool = False) -> Optional[JobOpeningRecord]:
        stmt = select(JobOpeningRecord).where(JobOpeningRecord.id == job_id)
        if not include_deleted:
            stmt = stmt.where(JobOpeningRecord.is_deleted.is_(False))
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_code(self, job_code: str) -> Optional[JobOpeningRecord]:
        stmt = select(JobOpeningRecord).where(JobOpeningRecord.job_code == job_code)
        return self.db.execute(stmt).scalar_one_or_none()

    def code_exists(self, job_code: str) -> bool:
        # Soft-deleted jobs keep their codes reserved.
        stmt = select(JobOpeningRecord.id).where(JobOpeningRecord.job_code == job_code).limit(1)
        return self.db.execute(stmt).first() is not None

    def add(self, record: JobOpeningRecord) -> JobOpeningRecord:
        self.db.add(record)
        self.db.flush()
        return record

    def refresh_screening_metadata(self, job_id: str) -> None:
        total = self.db.execute(
            select(func.count(ResumeRecord.id)).where(
                ResumeRecord.job_id == job_id,
                ResumeRecord.is_deleted.is_(False),
            )
        ).scalar_one()
        screened = self.db.execute(
            select(func.count(ResumeRecord.id)).where(
                ResumeRecord.job_id == job_id,
                ResumeRecord.is_deleted.is_(False),
                ResumeRecord.ai_score.is_not(None),
            )
        ).scalar_one()
        self.db.execute(
            update(JobOpeningRecord)
            .where(JobOpeningRecord.id == job_id)
            .values(total_resumes=total, screened_resumes=screened, last_screened_at=utcnow())
        )


class ResumeRepository(BaseRepository):
    def get(self, resume_id: str, include_deleted: bool = False) -> Optional[ResumeRecord]:
        stmt = select(ResumeRecord).where(ResumeRecord.id == resume_id)
        if not include_deleted:
            stmt = stmt.where(ResumeRecord.is_deleted.is_(False))
        return self.db.execute(stmt).scalar_one_or_none()

    def get_many(self, resume_ids: Iterable[str]) -> List[ResumeRecord]:
        ids = list(resume_ids)
        if not ids:
            return []
        stmt = select(ResumeRecord).where(
            ResumeRecord.id.in_(ids),
            ResumeRecord.is_deleted.is_(False),
        )
        return self.db.execute(stmt).scalars().all()

    def get_many_for_job(self, job_id: str, resume_ids: Iterable[str]) -> List[ResumeRecord]:
        ids = list(resume_ids)
        if not ids:
            return []
        stmt = select(ResumeRecord).where(
            ResumeRecord.job_id == job_id,
            ResumeRecord.id.in_(ids),
            ResumeRecord.is_deleted.is_(False),
        )
        return self.db.execute(stmt).scalars().all()

    def list_for_job(self, job_id: str) -> List[ResumeRecord]:
        stmt = select(ResumeRecord).where(
            ResumeRecord.job_id == job_id,
            ResumeRecord.is_deleted.is_(False),
        ).order_by(ResumeRecord.created_at)
        return self.db.execute(stmt).scalars().all()

    def list_by_stage(self, job_id: str, stage: str) -> List[ResumeRecord]:
        stmt = select(ResumeRecord).where(
            ResumeRecord.job_id == job_id,
            ResumeRecord.pipeline_stage == stage,
            ResumeRecord.is_deleted.is_(False),
        ).order_by(ResumeRecord.ai_score.desc().nulls_last(), ResumeRecord.created_at.desc())
        return self.db.execute(stmt).scalars().all()

    def add(self, record: ResumeRecord) -> ResumeRecord:
        self.db.add(record)
        self.db.flush()
        return record

    def filter_scored(
        self,
        job_id: str,
        *,
        min_score: Optional[float] = None,
        max_score: Optional[float] = None,
        status: Optional[str] = None,
        pipeline_stage: Optional[str] = None,
        skill: Optional[str] = None,
        sort_by: str = 'ai_score',
        descending: bool = True,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[List[ResumeRecord], int]:
        """Return one page of scored resumes and the total number of matches."""
        conditions = [
            ResumeRecord.job_id == job_id,
            ResumeRecord.is_deleted.is_(False),
            ResumeRecord.ml_processed.is_(True),
        ]
        if min_score is not None:
            conditions.append(ResumeRecord.ai_score >= min_score)
        if max_score is not None:
            conditions.append(ResumeRecord.ai_score <= max_score)
        if status is not None:
            conditions.append(ResumeRecord.status == status)
        if pipeline_stage is not None:
            conditions.append(ResumeRecord.pipeline_stage == pipeline_stage)
        if skill is not None:
            # Matches a whole element of the JSON array, case-insensitively.
            conditions.append(
                func.lower(cast(ResumeRecord.matched_skills, Text)).like(
                    f"%{_escape_like(json.dumps(skill.lower()))}%", escape='\\'
                )
            )

        column = _SORT_COLUMNS[sort_by]
        order = column.desc() if descending else column.asc()
        stmt = (
            select(ResumeRecord)
            .where(*conditions)
            .order_by(order.nulls_last(), ResumeRecord.created_at.desc(), ResumeRecord.id)
            .offset(offset)
            .limit(limit)
        )
        total = self.db.execute(select(func.count(ResumeRecord.id)).where(*conditions)).scalar_one()
        return self.db.execute(stmt).scalars().all(), total

    def apply_score(self, resume_id: str, *, composite: float, status: str, sub_scores: dict[str, Any],
                    matched_skills: list[str], missing_skills: list[str]) -> int:
        stmt = (
            update(ResumeRecord)
            .where(ResumeRecord.id == resume_id, ResumeRecord.is_deleted.is_(False))
            .values(
                ai_score=composite,
                score=composite,
                semantic_score=sub_scores.get("semantic"),
                skill_match_score=sub_scores.get("skill_match"),
                experience_score=sub_scores.get("experience"),
                metrics_score=sub_scores.get("metrics"),
                complexity_score=sub_scores.get("complexity"),
                matched_skills=list(matched_skills),
                missing_skills=list(missing_skills),
                status=status,
                ml_processed=True,
                ml_processed_at=utcnow(),
                ml_error=None,
                updated_at=utcnow(),
            )
        )
        return self.db.execute(stmt).rowcount

    def record_failure(self, resume_id: str, error: str) -> int:
        stmt = (
            update(ResumeRecord)
            .where(ResumeRecord.id == resume_id, ResumeRecord.is_deleted.is_(False))
            .values(ml_processed=False, ml_error=error, updated_at=utcnow())
        )
        return self.db.execute(stmt).rowcount

    def soft_delete(self, resume_id: str) -> int:
        stmt = update(ResumeRecord).where(ResumeRecord.id == resume_id).values(is_deleted=True, updated_at=utcnow())
        return self.db.execute(stmt).rowcount


class RunRepository(BaseRepository):
    def create(self, job_id: str, total: int) -> ScreenRunRecord:
        record = ScreenRunRecord(job_id=job_id, total=total, processed=0, screened_in=0,
                                 screened_out=0, status='running', done=False)
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, run_id: str) -> Optional[ScreenRunRecord]:
        stmt = select(ScreenRunRecord).where(ScreenRunRecord.id == run_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_job(self, job_id: str) -> List[ScreenRunRecord]:
        stmt = select(ScreenRunRecord).where(
            ScreenRunRecord.job_id == job_id
        ).order_by(ScreenRunRecord.created_at.desc())
        return self.db.execute(stmt).scalars().all()

    def active_for_job(self, job_id: str) -> Optional[ScreenRunRecord]:
        stmt = select(ScreenRunRecord).where(
            ScreenRunRecord.job_id == job_id,
            ScreenRunRecord.status == 'running',
        ).order_by(ScreenRunRecord.created_at.desc()).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def record_item(self, run_id: str, entry: dict[str, Any], outcome: Optional[str]) -> bool:
        """Count one processed item and append its result entry.

        outcome is 'screened-in', 'screened-out' or None for a failed item.
        Returns False when the run is already done; nothing is written then.
        """
        stmt = (
            update(ScreenRunRecord)
            .where(
                ScreenRunRecord.id == run_id,
                ScreenRunRecord.done.is_(False),
                ScreenRunRecord.processed < ScreenRunRecord.total,
            )
            .values(
                processed=ScreenRunRecord.processed + 1,
                screened_in=ScreenRunRecord.screened_in + (1 if outcome == 'screened-in' else 0),
                screened_out=ScreenRunRecord.screened_out + (1 if outcome == 'screened-out' else 0),
                updated_at=utcnow(),
            )
        )
        if self.db.execute(stmt).rowcount != 1:
            logger.warning("screen_run.item_dropped", run_id=run_id, resume_id=entry.get("resume_id"))
            return False

        seq = self.db.execute(
            select(ScreenRunRecord.processed).where(ScreenRunRecord.id == run_id)
        ).scalar_one()
        self.db.add(ScreenRunResultRecord(run_id=run_id, seq=seq, **entry))
        return True

    def finalize(self, run_id: str, status: str, error: Optional[str] = None) -> bool:
        stmt = (
            update(ScreenRunRecord)
            .where(ScreenRunRecord.id == run_id, ScreenRunRecord.done.is_(False))
            .values(status=status, done=True, error=error, updated_at=utcnow())
        )
        return self.db.execute(stmt).rowcount == 1
