"""Database connection manager for the record store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from student_records.store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger("student_records.store")

MEMORY = ":memory:"


class Database:
    """Database connection manager.

    Owns the engine and session factory for one database. The handle is
    created at application startup and closed at shutdown; nothing else in
    the package keeps a reference to it beyond what it is given.
    """

    def __init__(self, url: str = "student_records.db") -> None:
        """Initialize database connection.

        Args:
            url: SQLite file path, ":memory:" for an in-memory DB, or a full
                 SQLAlchemy URL such as "postgresql+psycopg://...".
        """
        self.url = url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def is_sqlite(self) -> bool:
        return "://" not in self.url or self.url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        return self.url in (MEMORY, f"sqlite:///{MEMORY}", "sqlite://")

    @property
    def read_concurrency(self) -> int:
        """Number of independent reads that may run at the same time.

        An in-memory database lives on one shared connection, so its reads
        are issued one after another.
        """
        return 1 if self.is_memory else 2

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            if self.is_memory:
                # StaticPool shares the single connection across threads
                # (needed for testing with TestClient)
                self._engine = create_engine(
                    "sqlite:///:memory:",
                    echo=False,
                    future=True,
                    poolclass=StaticPool,
                    connect_args={"check_same_thread": False},
                )
            elif self.is_sqlite:
                if "://" in self.url:
                    self._engine = create_engine(self.url, echo=False, future=True)
                else:
                    Path(self.url).parent.mkdir(parents=True, exist_ok=True)
                    self._engine = create_engine(
                        f"sqlite:///{self.url}",
                        echo=False,
                        future=True,
                        connect_args={"check_same_thread": False},
                    )
            else:
                self._engine = create_engine(self.url, echo=False, future=True, pool_pre_ping=True)

            if self.is_sqlite:
                # Enable WAL mode for concurrent reads
                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection: object, _connection_record: object) -> None:
                    cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
                    cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()

            logger.debug("Database engine created for %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
            )
        return self._session_factory

    def create_tables(self) -> None:
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop all tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            A new SQLAlchemy session.
        """
        return self.session_factory()

    def ping(self) -> bool:
        """Check that the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        """Close the database connection."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
