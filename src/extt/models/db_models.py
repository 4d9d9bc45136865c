"""SQLAlchemy database models for the extt note index."""
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Integer, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger(__name__)

# Create base class for SQLAlchemy models
Base = declarative_base()


class DBNote(Base):
    """Index row for a note file.

    ``created_at`` and ``updated_at`` are reserved for future use and are
    never written by the store.
    """
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True)
    path = Column(Text, nullable=False, unique=True)
    title = Column(Text, nullable=True)
    created_at = Column(Text, nullable=True)
    updated_at = Column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(path='{self.path}', title='{self.title}')>"


def init_db(database_path: Optional[Path] = None) -> Engine:
    """Open (creating if needed) the index database and its ``notes`` table.

    The parent directory of ``database_path`` is created first. An existing
    database is reused as is. Without a path the index lives in memory for
    the lifetime of the returned engine.

    Applies SQLite settings for crash resilience:
    - WAL (Write-Ahead Logging) mode for atomic writes
    - NORMAL synchronous mode (good balance of safety vs speed)
    - Pool pre-ping to detect stale connections
    """
    if database_path is None:
        # A single shared connection, otherwise every connection would see
        # its own empty in-memory database
        engine = create_engine(
            "sqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        database_path = Path(database_path)
        database_path.parent.mkdir(parents=True, exist_ok=True)
        # SQLite is single-writer, so a small pool is ideal
        engine = create_engine(
            f"sqlite:///{database_path}",
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_pre_ping=True,
        )

    # Apply WAL mode and other PRAGMA settings on every connection
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    Base.metadata.create_all(engine)
    logger.debug(f"Index database ready at {database_path or ':memory:'}")

    return engine


def get_session_factory(engine: Engine):
    """Get a session factory for the database."""
    return sessionmaker(bind=engine)
