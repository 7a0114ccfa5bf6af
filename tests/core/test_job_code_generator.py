from __future__ import annotations

import random

import pytest

from autohire.core.job_code import JobCodeGenerator, is_valid_job_code
from autohire.errors import CodeGenerationExhausted


def test_generated_codes_match_format() -> None:
    generator = JobCodeGenerator(lambda _code: False, rng=random.Random(7))

    codes = [generator.generate() for _ in range(200)]

    assert all(is_valid_job_code(code) for code in codes)
    assert all(len(code) == 7 and code[0] != "0" for code in codes)


def test_generator_retries_on_existing_code() -> None:
    taken: set[str] = set()
    first = JobCodeGenerator(lambda _code: False, rng=random.Random(42)).generate()
    taken.add(first)
    checked: list[str] = []

    def exists(code: str) -> bool:
        checked.append(code)
        return code in taken

    code = JobCodeGenerator(exists, rng=random.Random(42)).generate()

    assert code != first
    assert checked[0] == first
    assert len(checked) == 2


def test_generator_gives_up_after_cap() -> None:
    calls: list[str] = []

    def exists(code: str) -> bool:
        calls.append(code)
        return True

    with pytest.raises(CodeGenerationExhausted):
        JobCodeGenerator(exists, max_attempts=5).generate()
    assert len(calls) == 5


@pytest.mark.parametrize("code", ["0123456", "123456", "12345678", "12a4567", ""])
def test_invalid_codes(code: str) -> None:
    assert not is_valid_job_code(code)
