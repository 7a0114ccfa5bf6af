"""Job opening schema."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

JobStatus = Literal["active", "closed"]

EducationLevel = Literal["highSchool", "diploma", "bachelors", "masters", "phd"]


class SalaryRange(BaseModel):
    """Salary range offered for a job opening."""

    min: float | None = Field(default=None, ge=0)
    max: float | None = Field(default=None, ge=0)
    currency: str = "USD"

    model_config = ConfigDict(extra="forbid")


class EligibilityCriteria(BaseModel):
    """Eligibility requirements attached to a job opening."""

    education_min_level: list[EducationLevel] = Field(default_factory=list)
    specialization: str | None = None
    academic_qualification: str | None = None
    min_experience_years: float | None = Field(default=None, ge=0)
    custom_criteria: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class JobOpeningDraft(BaseModel):
    """Editable fields of a job opening, as supplied by the company."""

    company_id: str | None = None
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    required_skills: list[str] = Field(default_factory=list)
    nice_to_have_skills: list[str] = Field(default_factory=list)
    experience_years: float | None = Field(default=None, ge=0)
    eligibility_criteria: EligibilityCriteria | None = None
    salary_range: SalaryRange | None = None
    location: str | None = None

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class JobOpening(JobOpeningDraft):
    """Persisted job opening."""

    id: str
    job_code: str | None = None
    status: JobStatus = "active"
    is_deleted: bool = False
    total_resumes: int = 0
    screened_resumes: int = 0
    last_screened_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(extra="ignore", from_attributes=True)
