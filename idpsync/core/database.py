"""Database engine and session management."""

from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator
from urllib.parse import urlparse

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from idpsync.core.config import get_settings


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""

    parsed = urlparse(database_url)
    if parsed.scheme != "sqlite" or parsed.path in ("", ":memory:", "/:memory:"):
        return
    # sqlite:///./data/x.db parses to path "/./data/x.db"
    raw_path = parsed.path[1:] if parsed.path.startswith("/./") else parsed.path
    Path(raw_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_engine() -> Engine:
    settings = get_settings()
    url = settings.database_url
    if not url.startswith("sqlite"):
        return create_engine(url, future=True, echo=settings.sql_echo, pool_pre_ping=True)

    _ensure_sqlite_directory(url)
    engine_kwargs: dict[str, object] = {
        "future": True,
        "echo": settings.sql_echo,
        "connect_args": {"check_same_thread": False},
    }
    if url.endswith(":memory:") or url == "sqlite://":
        engine_kwargs["poolclass"] = StaticPool
    return create_engine(url, **engine_kwargs)


@lru_cache
def get_sessionmaker() -> sessionmaker[Session]:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=get_engine(),
        future=True,
        class_=Session,
        expire_on_commit=False,
    )


def get_session() -> Iterator[Session]:
    """FastAPI dependency for acquiring a database session."""

    with session_scope() as session:
        yield session


@contextmanager
def session_scope() -> Iterator[Session]:
    """Own one session for a sync invocation; always released, rolled back on error."""

    session = get_sessionmaker()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
