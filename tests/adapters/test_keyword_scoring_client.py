from __future__ import annotations

import pytest

from autohire.adapters import KeywordScoringClient, KeywordScoringConfig
from autohire.errors import ScoringError
from autohire.schemas.scoring import JobContext, ScoringRequest

RESUME = """
Jane Doe
Senior engineer with 6 years of experience.
Built REST APIs in Python and FastAPI.
Operated PostgreSQL clusters on AWS.
"""


def make_request(text: str = RESUME, **job_fields) -> ScoringRequest:
    job = JobContext(job_id="job-1", **job_fields)
    return ScoringRequest(job=job, resume_id="resume-1", resume_text=text)


def test_skill_and_experience_scores() -> None:
    client = KeywordScoringClient()
    request = make_request(
        required_skills=["Python", "PostgreSQL", "Go"],
        nice_to_have_skills=["AWS", "Kubernetes"],
        experience_years=4,
    )

    response = client.score(request, timeout=5)

    # required 2/3 at weight 1.0, nice 1/2 at weight 0.5
    expected = (1.0 * 2 / 3 + 0.5 * 1 / 2) / 1.5 * 100
    assert response.sub_scores.skill_match == pytest.approx(expected)
    assert response.sub_scores.experience == 100.0
    assert response.sub_scores.semantic is None
    assert response.matched_skills == ["Python", "PostgreSQL", "AWS"]
    assert response.missing_skills == ["Go"]


def test_partial_experience_is_proportional() -> None:
    response = KeywordScoringClient().score(make_request(experience_years=8, required_skills=["Python"]), timeout=5)

    assert response.sub_scores.experience == pytest.approx(75.0)


def test_no_job_skills_leaves_scores_absent() -> None:
    response = KeywordScoringClient().score(make_request(), timeout=5)

    assert response.sub_scores.present() == {}


def test_fuzzy_match_threshold() -> None:
    request = make_request("Experienced with Postgres replication", required_skills=["PostgreSQL"])

    strict = KeywordScoringClient(config=KeywordScoringConfig(min_similarity=99)).score(request, timeout=5)

    assert strict.missing_skills == ["PostgreSQL"]


def test_empty_text_is_invalid_input() -> None:
    with pytest.raises(ScoringError) as excinfo:
        KeywordScoringClient().score(make_request("   "), timeout=5)

    assert excinfo.value.kind == "InvalidInput"
