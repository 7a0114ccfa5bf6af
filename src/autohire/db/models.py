"""SQLAlchemy records for jobs, resumes and screening runs."""

from __future__ import annotations

import uuid

import pendulum
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow():
    return pendulum.now("UTC")


class JobOpeningRecord(Base):
    """
    A posted role.

    job_code is unique among non-null values and is never rewritten once set,
    including after soft deletion.
    """
    __tablename__ = 'job_opening'

    id = Column(String(36), primary_key=True, default=_new_id)
    company_id = Column(String(64), nullable=True)
    job_code = Column(String(7), nullable=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    required_skills = Column(JSON, default=list)
    nice_to_have_skills = Column(JSON, default=list)
    experience_years = Column(Float, nullable=True)
    eligibility_criteria = Column(JSON, nullable=True)
    salary_range = Column(JSON, nullable=True)
    location = Column(Text, nullable=True)

    status = Column(String(16), nullable=False, default='active')
    is_deleted = Column(Boolean, nullable=False, default=False)

    # Screening metadata, refreshed when a run finishes
    total_resumes = Column(Integer, nullable=False, default=0)
    screened_resumes = Column(Integer, nullable=False, default=0)
    last_screened_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    resumes = relationship("ResumeRecord", back_populates="job")

    __table_args__ = (
        UniqueConstraint('job_code', name='uq_job_opening_job_code'),
        Index('idx_job_opening_company', 'company_id'),
        Index('idx_job_opening_status', 'status'),
    )


class ResumeRecord(Base):
    """
    One candidate's submission against one job.

    status tracks screening mechanics, pipeline_stage tracks the human
    recruiting process.
    """
    __tablename__ = 'resume'

    id = Column(String(36), primary_key=True, default=_new_id)
    candidate_id = Column(String(64), nullable=False)
    job_id = Column(String(36), ForeignKey('job_opening.id'), nullable=False)

    candidate_name = Column(Text, nullable=False, default='')
    email = Column(Text, nullable=True)

    file_ref = Column(Text, nullable=False)
    original_name = Column(Text, nullable=True)
    mime_type = Column(String(128), nullable=True)

    status = Column(String(16), nullable=False, default='uploaded')
    pipeline_stage = Column(String(16), nullable=False, default='screening')

    ai_score = Column(Float, nullable=True)
    semantic_score = Column(Float, nullable=True)
    skill_match_score = Column(Float, nullable=True)
    experience_score = Column(Float, nullable=True)
    metrics_score = Column(Float, nullable=True)
    complexity_score = Column(Float, nullable=True)
    score = Column(Float, nullable=True)  # legacy mirror of ai_score

    matched_skills = Column(JSON, default=list)
    missing_skills = Column(JSON, default=list)

    ml_processed = Column(Boolean, nullable=False, default=False)
    ml_processed_at = Column(DateTime(timezone=True), nullable=True)
    ml_error = Column(Text, nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    job = relationship("JobOpeningRecord", back_populates="resumes")

    __table_args__ = (
        Index('idx_resume_job_score', 'job_id', 'ai_score'),
        Index('idx_resume_job_status', 'job_id', 'status'),
        Index('idx_resume_candidate', 'candidate_id'),
    )


class ScreenRunRecord(Base):
    """
    One batch screening invocation over one job.

    Counters only move through atomic UPDATE statements guarded by done = false.
    """
    __tablename__ = 'screen_run'

    id = Column(String(36), primary_key=True, default=_new_id)
    job_id = Column(String(36), ForeignKey('job_opening.id'), nullable=False)

    total = Column(Integer, nullable=False, default=0)
    processed = Column(Integer, nullable=False, default=0)
    screened_in = Column(Integer, nullable=False, default=0)
    screened_out = Column(Integer, nullable=False, default=0)

    status = Column(String(16), nullable=False, default='running')
    done = Column(Boolean, nullable=False, default=False)
    error = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    results = relationship(
        "ScreenRunResultRecord",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="ScreenRunResultRecord.seq",
    )

    __table_args__ = (
        Index('idx_screen_run_job_created', 'job_id', 'created_at'),
        Index('idx_screen_run_status', 'status'),
    )


class ScreenRunResultRecord(Base):
    """
    Per-resume outcome owned by a run. A snapshot, never updated after insert.
    """
    __tablename__ = 'screen_run_result'

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(36), ForeignKey('screen_run.id', ondelete='CASCADE'), nullable=False)
    seq = Column(Integer, nullable=False)

    resume_id = Column(String(36), nullable=False)
    candidate_id = Column(String(64), nullable=True)
    candidate_name = Column(Text, nullable=True)
    score = Column(Float, nullable=True)
    fit_level = Column(String(16), nullable=True)
    status = Column(String(16), nullable=True)
    matched_skills = Column(JSON, default=list)
    missing_skills = Column(JSON, default=list)
    red_flags = Column(JSON, default=list)
    strong_signals = Column(JSON, default=list)
    concerns = Column(JSON, default=list)
    error = Column(Text, nullable=True)

    run = relationship("ScreenRunRecord", back_populates="results")

    __table_args__ = (
        Index('idx_screen_run_result_run', 'run_id'),
    )
