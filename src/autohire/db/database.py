"""Engine and session management."""

from __future__ import annotations

import contextlib

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = structlog.get_logger(__name__)

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:", "sqlite+pysqlite:///:memory:")


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = _build_engine(url, echo)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine)

    def init_db(self) -> None:
        Base.metadata.create_all(self.engine)

    @contextlib.contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session: Session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def _build_engine(url: str, echo: bool) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    extra = {"poolclass": StaticPool} if url in _MEMORY_URLS else {}
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 30},
        **extra,
    )

    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.debug("database.sqlite", url=url)
    return engine
