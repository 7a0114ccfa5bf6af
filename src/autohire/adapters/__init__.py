"""Adapters for resume storage and local scoring."""

from __future__ import annotations

from ..errors import ContentUnavailable
from .keyword import KeywordScoringClient, KeywordScoringConfig
from .local import LocalFileContentProvider


class InMemoryContentProvider:
    """Content provider over a mapping of file reference to text."""

    def __init__(self, documents: dict[str, str] | None = None):
        self._documents = dict(documents or {})

    def put(self, file_ref: str, text: str) -> None:
        self._documents[file_ref] = text

    def fetch_text(self, file_ref: str) -> str:
        text = self._documents.get(file_ref, "").strip()
        if not text:
            raise ContentUnavailable(f"no content stored for {file_ref!r}")
        return text


__all__ = [
    "InMemoryContentProvider",
    "KeywordScoringClient",
    "KeywordScoringConfig",
    "LocalFileContentProvider",
]
