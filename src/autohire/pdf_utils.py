"""Utilities for extracting text from resume documents."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Sequence

import pymupdf4llm

TRUNCATION_MARKER = "[TRUNCATED]"

_PAGE_COUNTER = re.compile(r"^\s*(?:page\s+)?\d+\s*(?:/|of)\s*\d+\s*$", re.IGNORECASE)


def extract_markdown(
    pdf_path: str | Path,
    *,
    exclude_patterns: Sequence[str] | None = None,
) -> str:
    """Return markdown text extracted from a PDF, removing boilerplate lines.

    Parameters
    ----------
    pdf_path:
        Path to the source PDF file.
    exclude_patterns:
        Optional substrings; any line containing one of them is dropped.
        Bare page counters such as ``2 / 5`` are always dropped.
    """

    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(pdf_path)

    markdown = pymupdf4llm.to_markdown(str(pdf_path))
    patterns = _build_patterns(exclude_patterns or ())

    cleaned_lines: list[str] = []
    for line in markdown.splitlines():
        if not line.strip():
            cleaned_lines.append(line)
            continue
        if _PAGE_COUNTER.match(line):
            continue
        if any(pattern.search(line) for pattern in patterns):
            continue
        cleaned_lines.append(line)
    return "\n".join(cleaned_lines)


def clip_text(text: str, max_chars: int) -> str:
    """Strip NUL bytes and surrounding whitespace, truncating long text."""
    cleaned = (text or "").replace("\x00", "").strip()
    if len(cleaned) > max_chars:
        return f"{cleaned[:max_chars]}\n\n{TRUNCATION_MARKER}"
    return cleaned


def _build_patterns(excludes: Iterable[str]) -> list[re.Pattern[str]]:
    patterns: list[re.Pattern[str]] = []
    for text in excludes:
        escaped = re.escape(text)
        # Allow a page counter suffix like " 1 / 63".
        patterns.append(re.compile(rf"{escaped}(?:\s+\d+\s*/\s*\d+)?"))
    return patterns


__all__ = ["TRUNCATION_MARKER", "clip_text", "extract_markdown"]
