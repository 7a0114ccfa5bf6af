"""Resume content provider backed by the local file system."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import structlog

from ..errors import ContentUnavailable
from ..pdf_utils import clip_text, extract_markdown

_TEXT_SUFFIXES = {".txt", ".md", ".markdown"}


class LocalFileContentProvider:
    """Resolve resume file references relative to a storage directory."""

    def __init__(
        self,
        base_dir: str | Path = ".",
        *,
        max_chars: int = 18000,
        exclude_patterns: Sequence[str] | None = None,
    ) -> None:
        self._base_dir = Path(base_dir).resolve()
        self._max_chars = max_chars
        self._exclude_patterns = list(exclude_patterns or [])
        self._logger = structlog.get_logger(__name__)

    def fetch_text(self, file_ref: str) -> str:
        path = self._resolve(file_ref)
        suffix = path.suffix.lower()
        try:
            if suffix == ".pdf":
                raw = extract_markdown(path, exclude_patterns=self._exclude_patterns)
            elif suffix in _TEXT_SUFFIXES:
                raw = path.read_text(encoding="utf-8", errors="replace")
            else:
                raise ContentUnavailable(f"unsupported resume format: {path.name}")
        except (OSError, RuntimeError, ValueError) as exc:
            raise ContentUnavailable(f"cannot read {file_ref!r}: {exc}") from exc

        text = clip_text(raw, self._max_chars)
        if not text:
            # Scanned PDFs come back empty without OCR.
            raise ContentUnavailable(f"no extractable text in {file_ref!r}")
        self._logger.debug("resume_text.extracted", file_ref=file_ref, chars=len(text))
        return text

    def _resolve(self, file_ref: str) -> Path:
        path = (self._base_dir / file_ref).resolve()
        if not path.is_relative_to(self._base_dir):
            raise ContentUnavailable(f"resume reference escapes storage directory: {file_ref!r}")
        if not path.is_file():
            raise ContentUnavailable(f"resume file not found: {file_ref!r}")
        return path
