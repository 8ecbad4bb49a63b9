from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from master_lookup.models import Base


def create_engine_from_url(database_url: str) -> Engine:
    # No connection is made here; an unreachable database only fails on first use.
    if database_url.startswith("sqlite:"):
        engine = create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
        )
        if sqlite_file_path(engine) is not None:
            # WAL lets lookups read while an import transaction is open
            @event.listens_for(engine, "connect")
            def _set_sqlite_pragma(dbapi_conn, _record) -> None:
                cur = dbapi_conn.cursor()
                try:
                    cur.execute("PRAGMA journal_mode=WAL;")
                finally:
                    cur.close()

        return engine

    return create_engine(database_url, future=True)


def sqlite_file_path(engine: Engine) -> Path | None:
    """Path of a file-backed SQLite database, None for anything else."""
    url = engine.url
    if url.get_backend_name() != "sqlite":
        return None
    db = url.database or ""
    if not db or db == ":memory:" or db.startswith("file:"):
        return None
    return Path(db)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def drop_db(engine: Engine) -> None:
    Base.metadata.drop_all(engine)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
