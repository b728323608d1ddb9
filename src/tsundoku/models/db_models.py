"""SQLAlchemy database models for tsundoku.

Rough overview of the database:

    links                      linktags                  tags
    = link_id  (pk) <-------+  = id      (pk)       +--> = tag_id (pk)
    = link                  +--= link_id (fk)       |    = tag    (unique)
    = comment                  = tag_id  (fk) ------+
    = archive
    = timestamp

A row in ``links`` is one queued or archived entry; ``linktags`` records
which tags are attached to it, in the order they were attached.
"""
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import (Column, DateTime, ForeignKey, Integer, Table, Text,
                        UniqueConstraint, create_engine, event)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from tsundoku.config import config
from tsundoku.exceptions import ErrorCode, StorageError
from tsundoku.models.schema import ArchiveState, utc_now

# Create base class for SQLAlchemy models
Base = declarative_base()

# Archive state is stored as a small integer; the mapping stays in this module
ARCHIVE_TO_DB: Dict[ArchiveState, int] = {
    ArchiveState.QUEUE: 0,
    ArchiveState.ARCHIVED: 1,
}
ARCHIVE_FROM_DB: Dict[int, ArchiveState] = {v: k for k, v in ARCHIVE_TO_DB.items()}

# Association table for links and tags. The surrogate id keeps attach order.
link_tags = Table(
    "linktags",
    Base.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("link_id", Integer, ForeignKey("links.link_id"), nullable=False, index=True),
    Column("tag_id", Integer, ForeignKey("tags.tag_id"), nullable=False, index=True),
    UniqueConstraint("link_id", "tag_id", name="unique_link_tag"),
    sqlite_autoincrement=True,
)


class DBLink(Base):
    """Database model for a link entry."""
    __tablename__ = "links"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column("link_id", Integer, primary_key=True, autoincrement=True)
    link = Column(Text, nullable=False)
    comment = Column(Text, default="", nullable=False)
    archive = Column(
        Integer, default=ARCHIVE_TO_DB[ArchiveState.QUEUE], nullable=False, index=True
    )
    timestamp = Column(DateTime, default=utc_now, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of link."""
        return f"<Link(id={self.id}, link='{self.link}', archive={self.archive})>"


class DBTag(Base):
    """Database model for a tag."""
    __tablename__ = "tags"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column("tag_id", Integer, primary_key=True, autoincrement=True)
    tag = Column(Text, unique=True, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of tag."""
        return f"<Tag(id={self.id}, tag='{self.tag}')>"


def is_memory_url(database_url: str) -> bool:
    """Whether a SQLite URL points at an in-memory database."""
    return database_url in ("sqlite://", "sqlite:///:memory:")


def ensure_database_dir(database_url: str) -> None:
    """Create the directory holding a SQLite database file.

    Raises:
        StorageError: If the directory cannot be created.
    """
    database = make_url(database_url).database
    if not database:
        return
    parent = Path(database).expanduser().parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(
            f"Cannot create database directory {parent}",
            operation="init_db",
            code=ErrorCode.STORAGE_CONNECTION_FAILED,
            original_error=e,
        ) from e


def ensure_schema(engine: Engine) -> None:
    """Create the links, tags and linktags tables if they are missing.

    Safe to call on every startup; existing tables are left untouched.

    Raises:
        StorageError: If the tables could not be created.
    """
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise StorageError(
            "Failed to create database schema",
            operation="ensure_schema",
            code=ErrorCode.SCHEMA_CREATION_FAILED,
            original_error=e,
        ) from e


def init_db(database_url: Optional[str] = None) -> Engine:
    """Create the engine and make sure the schema exists.

    The directory of a file database is created if missing, and file
    databases run in WAL mode. Foreign keys are switched on for every
    connection. In-memory databases share one connection through StaticPool,
    otherwise each session would see its own empty database.

    Args:
        database_url: SQLAlchemy URL. Defaults to the configured database file.

    Returns:
        The SQLAlchemy engine.

    Raises:
        StorageError: If the engine could not be created or the schema set up.
    """
    url = database_url or config.get_db_url()
    in_memory = is_memory_url(url)
    if not in_memory:
        ensure_database_dir(url)

    try:
        if in_memory:
            engine = create_engine(
                url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(url)
    except SQLAlchemyError as e:
        raise StorageError(
            f"Failed to create database engine for {url}",
            operation="init_db",
            code=ErrorCode.STORAGE_CONNECTION_FAILED,
            original_error=e,
        ) from e

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    ensure_schema(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """Get a session factory for the database."""
    return sessionmaker(bind=engine, expire_on_commit=False)
