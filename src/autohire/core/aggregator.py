"""Composite score aggregation and fit classification."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal, Mapping

from ..errors import InsufficientData, InvalidScore
from ..schemas.config import FitThresholds
from ..schemas.scoring import SUB_SCORE_FIELDS, SubScores

FitLevel = Literal["strong", "moderate", "weak", "poor"]
ScreeningDecision = Literal["screened-in", "screened-out"]


@dataclass(slots=True)
class AggregateResult:
    """Composite score with its derived labels."""

    composite: float
    fit_level: FitLevel
    decision: ScreeningDecision
    used_weights: dict[str, float]


class ScoreAggregator:
    """Combine weighted sub-scores into one composite and classify it."""

    WEIGHTS: dict[str, float] = {
        "semantic": 0.40,
        "skill_match": 0.30,
        "experience": 0.15,
        "metrics": 0.10,
        "complexity": 0.05,
    }

    def __init__(
        self,
        *,
        fit_thresholds: FitThresholds | Mapping[str, float] | None = None,
        screen_in_threshold: float = 60.0,
    ) -> None:
        if fit_thresholds is None:
            thresholds = FitThresholds()
        elif isinstance(fit_thresholds, FitThresholds):
            thresholds = fit_thresholds
        else:
            thresholds = FitThresholds.model_validate(dict(fit_thresholds))
        _check_score("screen_in_threshold", screen_in_threshold)
        if screen_in_threshold < thresholds.moderate:
            raise ValueError(
                "screen_in_threshold must be >= the moderate fit threshold "
                f"({screen_in_threshold} < {thresholds.moderate})"
            )
        self._thresholds = thresholds
        self._screen_in_threshold = float(screen_in_threshold)

    @property
    def thresholds(self) -> FitThresholds:
        return self._thresholds

    @property
    def screen_in_threshold(self) -> float:
        return self._screen_in_threshold

    def aggregate(self, sub_scores: SubScores | Mapping[str, Any]) -> AggregateResult:
        """Return the composite score, fit level and screening decision.

        Absent sub-scores are dropped and the remaining weights renormalized.
        Raises ``InsufficientData`` when every sub-score is absent and
        ``InvalidScore`` when a present value is outside [0, 100].
        """
        present = self._present_scores(sub_scores)
        if not present:
            raise InsufficientData("no sub-scores available to aggregate")

        total_weight = sum(self.WEIGHTS[name] for name in present)
        used_weights = {
            name: self.WEIGHTS[name] / total_weight for name in present
        }
        composite = sum(value * used_weights[name] for name, value in present.items())
        # Trim float noise before threshold comparisons.
        composite = min(max(round(composite, 6), 0.0), 100.0)

        return AggregateResult(
            composite=composite,
            fit_level=self.classify(composite),
            decision=self.decide(composite),
            used_weights=used_weights,
        )

    def classify(self, composite: float) -> FitLevel:
        _check_score("composite", composite)
        if composite >= self._thresholds.strong:
            return "strong"
        if composite >= self._thresholds.moderate:
            return "moderate"
        if composite >= self._thresholds.weak:
            return "weak"
        return "poor"

    def decide(self, composite: float) -> ScreeningDecision:
        _check_score("composite", composite)
        if composite >= self._screen_in_threshold:
            return "screened-in"
        return "screened-out"

    @staticmethod
    def _present_scores(sub_scores: SubScores | Mapping[str, Any]) -> dict[str, float]:
        if isinstance(sub_scores, SubScores):
            raw = sub_scores.model_dump()
        else:
            unknown = set(sub_scores) - set(SUB_SCORE_FIELDS)
            if unknown:
                raise InvalidScore(f"unknown sub-score names: {sorted(unknown)}")
            raw = dict(sub_scores)

        present: dict[str, float] = {}
        for name in SUB_SCORE_FIELDS:
            value = raw.get(name)
            if value is None:
                continue
            present[name] = _check_score(name, value)
        return present


def _check_score(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidScore(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidScore(f"{name} must be a number, got {value!r}") from exc
    if math.isnan(number) or not 0.0 <= number <= 100.0:
        raise InvalidScore(f"{name} must be within [0, 100], got {value!r}")
    return number


__all__ = ["AggregateResult", "FitLevel", "ScoreAggregator", "ScreeningDecision"]
