"""Pipeline stage state machine for resumes after screening."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidTransition
from ..schemas.resume import PIPELINE_STAGES, RESUME_STATUSES, SCREENING_OUTCOMES

FORWARD_ORDER: tuple[str, ...] = ("screening", "assessment", "interview", "offer", "hired")
TERMINAL_STAGES: frozenset[str] = frozenset({"hired", "rejected"})


@dataclass(slots=True, frozen=True)
class StageTransition:
    """Accepted move of one resume between two stages."""

    from_stage: str
    to_stage: str
    skipped: tuple[str, ...] = ()

    @property
    def is_skip(self) -> bool:
        return bool(self.skipped)


class PipelineStageTracker:
    """Validate moves through ``screening → assessment → interview → offer → hired``.

    Rules:

    * ``hired`` and ``rejected`` are terminal.
    * ``rejected`` is reachable from every non-terminal stage, regardless of
      screening status.
    * Forward moves go one stage at a time; jumping ahead requires
      ``skip=True`` and the skipped stages are reported back so the caller
      can audit them.
    * Leaving ``screening`` requires the resume's screening status to be
      ``screened-in`` or ``screened-out``.
    """

    def check(
        self,
        *,
        current: str,
        target: str,
        status: str,
        skip: bool = False,
    ) -> StageTransition:
        if current not in PIPELINE_STAGES:
            raise InvalidTransition(f"unknown current stage {current!r}")
        if target not in PIPELINE_STAGES:
            raise InvalidTransition(f"unknown target stage {target!r}")
        if status not in RESUME_STATUSES:
            raise InvalidTransition(f"unknown screening status {status!r}")

        if current in TERMINAL_STAGES:
            raise InvalidTransition(f"stage {current!r} is terminal")
        if target == "rejected":
            return StageTransition(from_stage=current, to_stage=target)
        if current == "screening" and status not in SCREENING_OUTCOMES:
            raise InvalidTransition(
                f"cannot leave 'screening' while screening status is {status!r}"
            )

        current_idx = FORWARD_ORDER.index(current)
        target_idx = FORWARD_ORDER.index(target)
        if target_idx <= current_idx:
            raise InvalidTransition(f"cannot move backwards from {current!r} to {target!r}")

        skipped = FORWARD_ORDER[current_idx + 1 : target_idx]
        if skipped and not skip:
            raise InvalidTransition(
                f"{current!r} -> {target!r} skips {list(skipped)}; use an explicit skip"
            )
        return StageTransition(from_stage=current, to_stage=target, skipped=skipped)

    def allowed_targets(self, *, current: str, status: str) -> list[str]:
        """Return the stages reachable without a skip."""
        if current in TERMINAL_STAGES:
            return []
        if current == "screening" and status not in SCREENING_OUTCOMES:
            return ["rejected"]
        next_stage = FORWARD_ORDER[FORWARD_ORDER.index(current) + 1]
        return [next_stage, "rejected"]


__all__ = ["FORWARD_ORDER", "PipelineStageTracker", "StageTransition", "TERMINAL_STAGES"]
