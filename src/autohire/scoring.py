"""Helpers for constructing scoring payloads and the HTTP scoring client."""

from __future__ import annotations

import json
import socket
from typing import Any
from urllib import error, request

import structlog
from pydantic import ValidationError

from .errors import ScoringError, ScoringErrorKind
from .schemas.job import JobOpening
from .schemas.scoring import JobContext, ScoringRequest, ScoringResponse, SubScores

# Response keys used by the ML ranking service.
_SUB_SCORE_KEYS: dict[str, str] = {
    "semantic": "semanticScore",
    "skill_match": "skillScore",
    "experience": "experienceScore",
    "metrics": "metricsScore",
    "complexity": "complexityScore",
}


def build_job_context(job: JobOpening) -> JobContext:
    return JobContext(
        job_id=job.id,
        title=job.title,
        description=job.description,
        required_skills=list(job.required_skills),
        nice_to_have_skills=list(job.nice_to_have_skills),
        experience_years=job.experience_years,
        location=job.location,
    )


def build_scoring_payload(scoring_request: ScoringRequest) -> dict[str, Any]:
    """Construct the JSON body expected by the scoring service."""

    job = scoring_request.job
    return {
        "job": {
            "job_id": job.job_id,
            "title": job.title,
            "description": job.description,
            "required_skills": job.required_skills,
            "nice_to_have_skills": job.nice_to_have_skills,
            "experience_years": job.experience_years,
        },
        "resume_id": scoring_request.resume_id,
        "resume_text": scoring_request.resume_text,
    }


def parse_scoring_response(body: dict[str, Any]) -> ScoringResponse:
    if not isinstance(body, dict):
        raise ScoringError(ScoringErrorKind.UNAVAILABLE, "scoring response must be a JSON object")
    try:
        sub_scores = SubScores(
            **{field: body.get(key) for field, key in _SUB_SCORE_KEYS.items()}
        )
        return ScoringResponse(
            sub_scores=sub_scores,
            matched_skills=_string_list(body.get("matchedSkills")),
            missing_skills=_string_list(body.get("missingSkills")),
            red_flags=_string_list(body.get("redFlags")),
            strong_signals=_string_list(body.get("strongSignals")),
            concerns=_string_list(body.get("concerns")),
        )
    except ValidationError as exc:
        raise ScoringError(ScoringErrorKind.UNAVAILABLE, f"malformed scoring response: {exc}") from exc


class HTTPScoringClient:
    """HTTP client for the external resume scoring service."""

    def __init__(self, endpoint: str, api_key: str | None = None):
        self._endpoint = endpoint.rstrip("/")
        self._api_key = api_key
        self._logger = structlog.get_logger(__name__)

    def score(self, scoring_request: ScoringRequest, *, timeout: float) -> ScoringResponse:
        payload = build_scoring_payload(scoring_request)
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["x-api-key"] = self._api_key

        req = request.Request(f"{self._endpoint}/score", data=data, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=timeout) as resp:
                body = resp.read().decode("utf-8")
        except error.HTTPError as exc:
            kind = ScoringErrorKind.INVALID_INPUT if 400 <= exc.code < 500 else ScoringErrorKind.UNAVAILABLE
            self._logger.warning("scoring.http_error", status=exc.code, resume_id=scoring_request.resume_id)
            raise ScoringError(kind, f"scoring service returned HTTP {exc.code}") from exc
        except error.URLError as exc:
            if isinstance(exc.reason, (socket.timeout, TimeoutError)):
                raise ScoringError(ScoringErrorKind.TIMEOUT, f"scoring timed out after {timeout}s") from exc
            self._logger.warning("scoring.request_failed", error=str(exc.reason))
            raise ScoringError(ScoringErrorKind.UNAVAILABLE, f"scoring service unreachable: {exc.reason}") from exc
        except (socket.timeout, TimeoutError) as exc:
            raise ScoringError(ScoringErrorKind.TIMEOUT, f"scoring timed out after {timeout}s") from exc

        try:
            parsed = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            raise ScoringError(ScoringErrorKind.UNAVAILABLE, "scoring response is not valid JSON") from exc
        return parse_scoring_response(parsed)


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


__all__ = [
    "HTTPScoringClient",
    "build_job_context",
    "build_scoring_payload",
    "parse_scoring_response",
]
