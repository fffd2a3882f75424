"""Engine and session factory."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .base import Base

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


class Database:
    """
    Owns one engine and its session factory.

    SQLite connections are opened with ``check_same_thread=False`` because
    the store is used from ``asyncio.to_thread`` workers, and with a busy
    timeout so concurrent writers wait instead of failing.
    """

    def __init__(self, url: str, echo: bool = False, busy_timeout: float = 30.0):
        self.url = url
        engine_args = {}
        if url.startswith("sqlite"):
            engine_args["connect_args"] = {"check_same_thread": False, "timeout": busy_timeout}
            if url in _MEMORY_URLS:
                # One shared connection, otherwise every thread sees its own empty database
                engine_args["poolclass"] = StaticPool

        self.engine: Engine = create_engine(url, echo=echo, **engine_args)
        if url.startswith("sqlite") and url not in _MEMORY_URLS:
            event.listen(self.engine, "connect", _sqlite_pragmas)

        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        """Create every table that does not exist yet."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Usage:
            with database.session_scope() as session:
                session.add(row)
                # Commits on successful exit, rolls back on exception
        """
        session = self.session_factory()
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


def _sqlite_pragmas(dbapi_connection, connection_record) -> None:
    # WAL lets readers proceed while one writer holds the lock
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()
