"""Service layer for reading-queue operations."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from tsundoku.exceptions import (
    ErrorCode,
    LinkNotFoundError,
    StorageError,
    TagNotFoundError,
)
from tsundoku.models.db_models import get_session_factory, init_db
from tsundoku.models.schema import (
    ArchiveState,
    Entry,
    LinkRecord,
    TagCreated,
    TagFound,
    TagLookupResult,
)
from tsundoku.observability import timed_operation, traced
from tsundoku.storage.link_repository import LinkRepository
from tsundoku.storage.linktag_repository import LinkTagRepository
from tsundoku.storage.tag_repository import TagRepository

logger = logging.getLogger(__name__)


class EntryService:
    """Service for adding, tagging and reading links.

    Owns the engine and hands its session factory to the link, tag and
    association repositories. Use it as a context manager, or call
    ``close`` when done, to release the database connection.
    """

    def __init__(self, engine: Optional[Engine] = None):
        """Initialize the service.

        Args:
            engine: Pre-configured SQLAlchemy engine with the schema in place.
                When None, one is created from the configured database path.

        Raises:
            StorageError: If the database cannot be opened or initialized.
        """
        self.engine = engine if engine is not None else init_db()
        self.session_factory = get_session_factory(self.engine)
        self.links = LinkRepository(self.session_factory)
        self.tags = TagRepository(self.session_factory)
        self.link_tags = LinkTagRepository(self.session_factory)

    @classmethod
    def open(cls, database_path: Union[str, Path]) -> "EntryService":
        """Open (creating if needed) a database file.

        Raises:
            StorageError: If the database cannot be opened or initialized.
        """
        path = Path(database_path).expanduser()
        return cls(engine=init_db(f"sqlite:///{path}"))

    @classmethod
    def open_in_memory(cls) -> "EntryService":
        """Open a fresh in-memory database, gone once the service is closed.

        Raises:
            StorageError: If the schema cannot be created.
        """
        return cls(engine=init_db("sqlite://"))

    def close(self) -> None:
        """Release the database connections."""
        self.engine.dispose()

    def __enter__(self) -> "EntryService":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # =========================================================================
    # Writes
    # =========================================================================

    def add_entry(self, entry: Entry) -> int:
        """Add a link with its comment and tags to the reading queue.

        The link, any new tags and the associations are written in one
        transaction. If any step fails, nothing from this call is kept and
        the error is re-raised.

        Args:
            entry: The entry to add.

        Returns:
            The identifier of the new link.

        Raises:
            StorageError: If the database fails, including at commit.
        """
        with timed_operation("add_entry", link=entry.link[:50]) as op:
            try:
                with self.session_factory() as session, session.begin():
                    link_id = self.links.create_link(
                        entry.link, entry.comment, session=session
                    )
                    for tag in entry.tags or []:
                        tag_id = self._resolve_tag_id(tag, session)
                        self.link_tags.link_tag(link_id, tag_id, session=session)
            except SQLAlchemyError as e:
                raise StorageError(
                    f"Failed to add entry for {entry.link}",
                    operation="add_entry",
                    code=ErrorCode.STORAGE_WRITE_FAILED,
                    original_error=e,
                ) from e

            op["link_id"] = link_id
            logger.info(f"Added link {link_id}: {entry.link}")
            return link_id

    def _resolve_tag_id(self, tag: str, session) -> int:
        """Create the tag if needed and return its identifier."""
        created = self.tags.create_tag_if_absent(tag, session=session)
        if isinstance(created, TagCreated):
            return created.tag_id

        found = self.tags.find_tag(tag, session=session)
        if not isinstance(found, TagFound):
            # Reported as existing a moment ago in the same transaction
            raise TagNotFoundError(tag=tag)
        return found.tag_id

    @traced("mark_read")
    def mark_read(self, link_id: int) -> None:
        """Move a link to the archive. Reading an archived link is a no-op.

        Raises:
            LinkNotFoundError: If no link has this identifier.
        """
        self.links.mark_read(link_id)
        logger.info(f"Marked link {link_id} as read")

    # =========================================================================
    # Tag queries
    # =========================================================================

    def find_tag(self, tag: str) -> TagLookupResult:
        """Look up a tag by exact text."""
        return self.tags.find_tag(tag)

    def tag_exists(self, tag: str) -> bool:
        """Check whether a tag with this exact text exists."""
        return self.tags.tag_exists(tag)

    @traced("list_tags")
    def list_tags(self) -> List[str]:
        """Get all tag texts in creation order."""
        return self.tags.list_tags()

    @traced("tag_counts")
    def tag_counts(self) -> Dict[str, int]:
        """Get each tag with the number of links carrying it."""
        return self.tags.count_links_per_tag()

    def tags_for_link(self, link_id: int) -> List[str]:
        """Get the tags attached to a link, in the order they were attached."""
        return self.link_tags.tags_for_link(link_id)

    # =========================================================================
    # Link queries
    # =========================================================================

    def get_entry(self, link_id: int) -> LinkRecord:
        """Get a link with its tags.

        Raises:
            LinkNotFoundError: If no link has this identifier.
        """
        with self.session_factory() as session:
            record = self.links.get_link(link_id, session=session)
            if record is None:
                raise LinkNotFoundError(link_id)
            record.tags = self.link_tags.tags_for_link(link_id, session=session)
            return record

    @traced("list_entries")
    def list_entries(self, archive: Optional[ArchiveState] = None) -> List[LinkRecord]:
        """Get links with their tags, optionally only those in one state.

        Args:
            archive: QUEUE for unread links, ARCHIVED for read ones, None for all.
        """
        with self.session_factory() as session:
            records = self.links.list_links(archive=archive, session=session)
            return self._with_tags(records, session)

    @traced("entries_for_tag")
    def entries_for_tag(
        self, tag: str, archive: Optional[ArchiveState] = None
    ) -> List[LinkRecord]:
        """Get the links carrying a tag, with all their tags.

        Args:
            tag: Exact tag text.
            archive: Only return links in this state. None returns all.

        Raises:
            TagNotFoundError: If the tag does not exist.
        """
        with self.session_factory() as session:
            if not self.tags.tag_exists(tag, session=session):
                raise TagNotFoundError(tag=tag, message=f"Tag '{tag}' not found")
            link_ids = self.link_tags.link_ids_for_tag(tag, session=session)
            records = self.links.get_links(link_ids, session=session)
            if archive is not None:
                records = [r for r in records if r.archive == archive]
            return self._with_tags(records, session)

    def _with_tags(self, records: List[LinkRecord], session) -> List[LinkRecord]:
        for record in records:
            record.tags = self.link_tags.tags_for_link(record.id, session=session)
        return records
