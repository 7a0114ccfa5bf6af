from __future__ import annotations

from pathlib import Path

import pytest

from autohire.db import Database
from autohire.jobs import JobOpeningService
from autohire.schemas.job import JobOpening


@pytest.fixture
def database(tmp_path: Path):
    db = Database(f"sqlite:///{tmp_path / 'autohire.db'}")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def job_service(database: Database) -> JobOpeningService:
    return JobOpeningService(database=database)


@pytest.fixture
def job(job_service: JobOpeningService) -> JobOpening:
    return job_service.create_job(
        {
            "company_id": "company-1",
            "title": "Backend Engineer",
            "description": "Build and run Python services.",
            "required_skills": ["Python", "PostgreSQL"],
            "nice_to_have_skills": ["Kubernetes"],
            "experience_years": 3,
        }
    )
