# authflow/db/database.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def make_engine(url: str) -> Engine:
    kwargs: dict = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # handlers run in a thread pool
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            # one shared connection, otherwise every thread sees an empty schema
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class Database:
    """Engine plus session factory, created once per application."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.engine = make_engine(url)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    def create_all(self) -> None:
        init_models()
        Base.metadata.create_all(self.engine)

    def session(self) -> Generator[Session, None, None]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit on normal exit (including an early return), roll back on error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_models() -> None:
    import authflow.models.user  # noqa: F401
    import authflow.models.verification_token  # noqa: F401
    import authflow.models.password_reset_token  # noqa: F401
    import authflow.models.refresh_token  # noqa: F401
