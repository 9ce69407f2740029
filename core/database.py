"""
Database handle and schema.

The Database is opened once at application startup and closed on shutdown.
It is passed explicitly to the JobStore instead of being held as module
state.

Lifecycle:
    # At application startup (main thread)
    database = Database("sqlite:///data/print_queue.db")
    database.open()

    # Any thread
    with database.session() as session, session.begin():
        ...

    # At application shutdown
    database.close()

SQLite URLs get check_same_thread=False so request threads can share the
engine; an in-memory URL ("sqlite://") additionally uses a single static
connection so every session sees the same tables.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from .exceptions import PersistenceError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetimes on every backend.

    Values are stored as naive UTC and come back with tzinfo=UTC, so
    comparisons against datetime.now(timezone.utc) work on SQLite too.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetime given; use timezone-aware UTC values")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    pass


class PrintJobRow(Base):
    """
    One print job.

    Settings are stored as their canonical primitive values; status as the
    JobStatus value string.
    """

    __tablename__ = "print_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    document_name: Mapped[str] = mapped_column(String(255), nullable=False)
    document_path: Mapped[str] = mapped_column(Text, nullable=False)
    paper_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Plain Paper")
    print_quality: Mapped[int] = mapped_column(Integer, nullable=False, default=600)
    color_mode: Mapped[str] = mapped_column(String(32), nullable=False, default="Grayscale")
    paper_size: Mapped[str] = mapped_column(String(32), nullable=False, default="A4")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    device_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("idx_print_jobs_user_submitted", "user_id", "submitted_at"),
        Index("idx_print_jobs_submitted", "submitted_at"),
    )


class Database:
    """
    Owns the SQLAlchemy engine and session factory.

    Attributes:
        url: SQLAlchemy database URL
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise PersistenceError("access", "database is not open")
        return self._engine

    def open(self) -> None:
        """
        Create the engine and the schema.

        Safe to call multiple times - only opens once.

        Raises:
            PersistenceError: If the database cannot be created
        """
        if self._engine is not None:
            return

        url = make_url(self.url)
        engine_kwargs = {"future": True}

        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                engine_kwargs["poolclass"] = StaticPool
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        try:
            engine = create_engine(self.url, **engine_kwargs)
            Base.metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            raise PersistenceError("open", str(e)) from e

        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        logger.info(f"Database opened: {url.render_as_string(hide_password=True)}")

    def session(self) -> Session:
        """
        Start a new session.

        Use as a context manager together with session.begin() so every
        write is committed (or rolled back) as one transaction.
        """
        if self._session_factory is None:
            raise PersistenceError("access", "database is not open")
        return self._session_factory()

    def close(self) -> None:
        """Dispose of the engine. Safe to call multiple times."""
        if self._engine is None:
            return

        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database closed")
