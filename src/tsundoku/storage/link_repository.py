"""Repository for link storage and retrieval."""
import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from tsundoku.exceptions import ErrorCode, LinkNotFoundError, ValidationError
from tsundoku.models.db_models import ARCHIVE_FROM_DB, ARCHIVE_TO_DB, DBLink
from tsundoku.models.schema import (
    ArchiveState,
    LinkRecord,
    ensure_timezone_aware,
    utc_now,
)
from tsundoku.storage.base import Repository

logger = logging.getLogger(__name__)


class LinkRepository(Repository):
    """Repository for managing link entries.

    A link starts in the reading queue and can only move to the archive.
    Link identifiers are allocated by SQLite AUTOINCREMENT, so they only
    ever grow and are never handed out twice.
    """

    def create_link(
        self,
        link: str,
        comment: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> int:
        """Insert a new link at the back of the reading queue.

        Args:
            link: The link text.
            comment: Optional comment. Stored as an empty string when absent.
            session: Optional session of an enclosing transaction.

        Returns:
            The identifier of the new link.

        Raises:
            ValidationError: If the link text is empty.
        """
        if not link or not link.strip():
            raise ValidationError(
                "Link cannot be empty", field="link", code=ErrorCode.LINK_INVALID
            )

        with self.session_scope(session, operation="create_link", write=True) as s:
            db_link = DBLink(
                link=link,
                comment=comment or "",
                archive=ARCHIVE_TO_DB[ArchiveState.QUEUE],
                timestamp=utc_now(),
            )
            s.add(db_link)
            s.flush()
            logger.debug(f"Created link {db_link.id}: {link}")
            return db_link.id

    def link_exists(self, link_id: int, session: Optional[Session] = None) -> bool:
        """Check whether a link with this identifier exists."""
        with self.session_scope(session, operation="link_exists") as s:
            return s.get(DBLink, link_id) is not None

    def mark_read(self, link_id: int, session: Optional[Session] = None) -> None:
        """Move a link from the queue to the archive.

        Marking an archived link again changes nothing.

        Args:
            link_id: The link identifier.
            session: Optional session of an enclosing transaction.

        Raises:
            LinkNotFoundError: If no link has this identifier.
        """
        with self.session_scope(session, operation="mark_read", write=True) as s:
            if s.get(DBLink, link_id) is None:
                raise LinkNotFoundError(link_id)

            s.execute(
                update(DBLink)
                .where(DBLink.id == link_id)
                .values(archive=ARCHIVE_TO_DB[ArchiveState.ARCHIVED])
            )
            logger.debug(f"Marked link {link_id} as read")

    def get_link(
        self, link_id: int, session: Optional[Session] = None
    ) -> Optional[LinkRecord]:
        """Get a link by identifier, without its tags.

        Returns:
            The LinkRecord if found, None otherwise.
        """
        with self.session_scope(session, operation="get_link") as s:
            db_link = s.get(DBLink, link_id)
            if db_link is None:
                return None
            return self._db_to_model(db_link)

    def list_links(
        self,
        archive: Optional[ArchiveState] = None,
        session: Optional[Session] = None,
    ) -> List[LinkRecord]:
        """Get links in identifier order, without their tags.

        Args:
            archive: Only return links in this state. None returns all links.
            session: Optional session of an enclosing transaction.
        """
        with self.session_scope(session, operation="list_links") as s:
            query = select(DBLink).order_by(DBLink.id)
            if archive is not None:
                query = query.where(DBLink.archive == ARCHIVE_TO_DB[archive])
            return [self._db_to_model(db_link) for db_link in s.scalars(query).all()]

    def get_links(
        self, link_ids: List[int], session: Optional[Session] = None
    ) -> List[LinkRecord]:
        """Get the links with the given identifiers, in identifier order."""
        if not link_ids:
            return []
        with self.session_scope(session, operation="get_links") as s:
            db_links = s.scalars(
                select(DBLink).where(DBLink.id.in_(link_ids)).order_by(DBLink.id)
            ).all()
            return [self._db_to_model(db_link) for db_link in db_links]

    @staticmethod
    def _db_to_model(db_link: DBLink) -> LinkRecord:
        return LinkRecord(
            id=db_link.id,
            link=db_link.link,
            comment=db_link.comment or "",
            archive=ARCHIVE_FROM_DB[db_link.archive],
            timestamp=ensure_timezone_aware(db_link.timestamp),
        )
