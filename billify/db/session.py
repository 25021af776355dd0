"""Engine and session factory. Every statement is bounded by settings.query_timeout_seconds."""
from __future__ import annotations

from collections.abc import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from billify.core.config import settings


def _connect_args(url: str, timeout_seconds: float) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout_seconds}
    if url.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }
    return {}


def build_engine(url: str, timeout_seconds: float | None = None, **kwargs) -> Engine:
    timeout = settings.query_timeout_seconds if timeout_seconds is None else timeout_seconds
    kwargs.setdefault("connect_args", _connect_args(url, timeout))
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 5)
        kwargs.setdefault("max_overflow", 10)
        kwargs.setdefault("pool_timeout", timeout)
        kwargs.setdefault("pool_pre_ping", True)
    eng = create_engine(url, **kwargs)
    if eng.dialect.name == "sqlite":
        # Invoice deletion relies on ON DELETE CASCADE for its items.
        @event.listens_for(eng, "connect")
        def _enable_foreign_keys(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

    return eng


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
