"""Append-only audit trail."""

from __future__ import annotations

import json
import threading
from datetime import datetime
from pathlib import Path

import pendulum


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: str, record: dict) -> None:
        entry = {"event": event, "at": pendulum.now("UTC").to_iso8601_string(), **record}
        line = json.dumps(entry, ensure_ascii=False, default=_json_default)
        with self._lock, self._path.open("a", encoding="utf-8") as handle:
            handle.write(line)
            handle.write("\n")

    def read(self) -> list[dict]:
        if not self._path.exists():
            return []
        with self._path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]


class NullAuditLogger:
    """Audit logger that discards every record."""

    def append(self, event: str, record: dict) -> None:
        return None


def _json_default(value):  # type: ignore[override]
    if isinstance(value, pendulum.DateTime):
        return value.to_iso8601_string()
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


__all__ = ["AuditLogger", "NullAuditLogger"]
