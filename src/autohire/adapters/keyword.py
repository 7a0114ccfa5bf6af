"""Local keyword scoring client used when no scoring service is configured."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from rapidfuzz import fuzz

from ..errors import ScoringError, ScoringErrorKind
from ..schemas.scoring import ScoringRequest, ScoringResponse, SubScores

_YEARS_PATTERN = re.compile(r"(\d{1,2})\+?\s*(?:years?|yrs?)", re.IGNORECASE)


@dataclass
class KeywordScoringConfig:
    """Configuration for rule-based skill matching."""

    min_similarity: float = 85.0
    required_weight: float = 1.0
    nice_to_have_weight: float = 0.5


class KeywordScoringClient:
    """Score skill coverage and stated experience against the job.

    Only the ``skill_match`` and ``experience`` dimensions are produced; the
    remaining sub-scores are left absent for the aggregator to renormalize.
    """

    def __init__(self, *, config: KeywordScoringConfig | None = None) -> None:
        self._config = config or KeywordScoringConfig()

    def score(self, request: ScoringRequest, *, timeout: float) -> ScoringResponse:
        text = request.resume_text.strip()
        if not text:
            raise ScoringError(ScoringErrorKind.INVALID_INPUT, "resume text is empty")

        corpus = self._build_corpus(text)
        required = _clean(request.job.required_skills)
        nice = _clean(request.job.nice_to_have_skills)

        required_hits = self._match_keywords(corpus, required)
        nice_hits = self._match_keywords(corpus, nice)

        weighted_sum = 0.0
        total_weight = 0.0
        if required:
            total_weight += self._config.required_weight
            weighted_sum += self._config.required_weight * len(required_hits) / len(required)
        if nice:
            total_weight += self._config.nice_to_have_weight
            weighted_sum += self._config.nice_to_have_weight * len(nice_hits) / len(nice)
        skill_match = weighted_sum / total_weight * 100 if total_weight > 0 else None

        return ScoringResponse(
            sub_scores=SubScores(
                skill_match=skill_match,
                experience=self._experience_score(text, request.job.experience_years),
            ),
            matched_skills=required_hits + nice_hits,
            missing_skills=[skill for skill in required if skill not in required_hits],
        )

    @staticmethod
    def _build_corpus(text: str) -> list[str]:
        return [line.strip().lower() for line in text.splitlines() if line.strip()]

    def _match_keywords(self, corpus: Sequence[str], keywords: Sequence[str]) -> list[str]:
        matches: list[str] = []
        for keyword in keywords:
            keyword_lower = keyword.lower()
            for line in corpus:
                if keyword_lower in line:
                    matches.append(keyword)
                    break
                if fuzz.partial_ratio(keyword_lower, line) >= self._config.min_similarity:
                    matches.append(keyword)
                    break
        return matches

    @staticmethod
    def _experience_score(text: str, required_years: float | None) -> float | None:
        if not required_years:
            return None
        stated = [int(match) for match in _YEARS_PATTERN.findall(text)]
        if not stated:
            return None
        return min(max(stated) / required_years, 1.0) * 100


def _clean(values: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen
