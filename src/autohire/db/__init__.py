"""Persistence layer: engine, ORM records and repositories."""

from __future__ import annotations

from .database import Database
from .models import Base, JobOpeningRecord, ResumeRecord, ScreenRunRecord, ScreenRunResultRecord
from .repositories import BaseRepository, JobRepository, ResumeRepository, RunRepository

__all__ = [
    'Base',
    'BaseRepository',
    'Database',
    'JobOpeningRecord',
    'JobRepository',
    'ResumeRecord',
    'ResumeRepository',
    'RunRepository',
    'ScreenRunRecord',
    'ScreenRunResultRecord',
]
