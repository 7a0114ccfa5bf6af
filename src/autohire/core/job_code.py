"""Short numeric job code generation."""

from __future__ import annotations

import random
import re
from typing import Callable

import structlog

from ..errors import CodeGenerationExhausted

JOB_CODE_PATTERN = re.compile(r"^[1-9][0-9]{6}$")
_MIN_CODE = 1_000_000
_MAX_CODE = 9_999_999


def is_valid_job_code(code: str) -> bool:
    return bool(JOB_CODE_PATTERN.fullmatch(code))


class JobCodeGenerator:
    """Draw random 7-digit codes until one is not yet assigned.

    The existence check is advisory only. The unique constraint on the job
    table is authoritative, and callers retry ``generate`` when an insert
    collides.
    """

    def __init__(
        self,
        exists: Callable[[str], bool],
        *,
        max_attempts: int = 20,
        rng: random.Random | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._exists = exists
        self._max_attempts = max_attempts
        self._rng = rng or random.SystemRandom()
        self._logger = structlog.get_logger(__name__)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def generate(self) -> str:
        for attempt in range(1, self._max_attempts + 1):
            code = str(self._rng.randint(_MIN_CODE, _MAX_CODE))
            if not self._exists(code):
                return code
            self._logger.debug("job_code.collision", code=code, attempt=attempt)
        raise CodeGenerationExhausted(
            f"no free job code found after {self._max_attempts} attempts"
        )


__all__ = ["JOB_CODE_PATTERN", "JobCodeGenerator", "is_valid_job_code"]
