"""Repository for tag storage and retrieval."""
import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tsundoku.exceptions import ErrorCode, ValidationError
from tsundoku.models.db_models import DBTag, link_tags
from tsundoku.models.schema import (
    TagAlreadyExists,
    TagCreated,
    TagFound,
    TagLookupResult,
    TagNotFound,
    TagUpsertResult,
)
from tsundoku.storage.base import Repository

logger = logging.getLogger(__name__)


class TagRepository(Repository):
    """Repository for managing tags.

    Tag text is unique and matched exactly: no trimming, no case folding.
    "News" and "news" are two different tags.
    """

    def find_tag(self, tag: str, session: Optional[Session] = None) -> TagLookupResult:
        """Look up a tag by its exact text.

        Args:
            tag: The tag text.
            session: Optional session of an enclosing transaction.

        Returns:
            TagFound with the identifier, or TagNotFound.
        """
        with self.session_scope(session, operation="find_tag") as s:
            tag_id = s.scalar(select(DBTag.id).where(DBTag.tag == tag))
            if tag_id is None:
                return TagNotFound()
            return TagFound(tag_id=tag_id)

    def tag_exists(self, tag: str, session: Optional[Session] = None) -> bool:
        """Check whether a tag with this exact text exists."""
        return isinstance(self.find_tag(tag, session=session), TagFound)

    def create_tag_if_absent(
        self, tag: str, session: Optional[Session] = None
    ) -> TagUpsertResult:
        """Insert a tag unless one with the same text already exists.

        Args:
            tag: The tag text.
            session: Optional session of an enclosing transaction.

        Returns:
            TagCreated with the new identifier, or TagAlreadyExists.

        Raises:
            ValidationError: If the tag text is empty.
        """
        if not tag:
            raise ValidationError(
                "Tag cannot be empty", field="tag", code=ErrorCode.TAG_INVALID
            )

        with self.session_scope(session, operation="create_tag", write=True) as s:
            if isinstance(self.find_tag(tag, session=s), TagFound):
                return TagAlreadyExists()

            db_tag = DBTag(tag=tag)
            s.add(db_tag)
            s.flush()
            logger.debug(f"Created tag {db_tag.id}: {tag}")
            return TagCreated(tag_id=db_tag.id)

    def tag_id_exists(self, tag_id: int, session: Optional[Session] = None) -> bool:
        """Check whether a tag with this identifier exists."""
        with self.session_scope(session, operation="tag_id_exists") as s:
            return s.get(DBTag, tag_id) is not None

    def list_tags(self, session: Optional[Session] = None) -> List[str]:
        """Get all tag texts in the order they were created."""
        with self.session_scope(session, operation="list_tags") as s:
            return list(s.scalars(select(DBTag.tag).order_by(DBTag.id)).all())

    def count_links_per_tag(self, session: Optional[Session] = None) -> Dict[str, int]:
        """Get all tags with the number of links carrying them.

        Tags without links are included with a count of zero.

        Returns:
            Dictionary mapping tag text to link count, in creation order.
        """
        with self.session_scope(session, operation="count_links_per_tag") as s:
            result = s.execute(
                select(DBTag.tag, func.count(link_tags.c.link_id))
                .select_from(DBTag)
                .outerjoin(link_tags, DBTag.id == link_tags.c.tag_id)
                .group_by(DBTag.id, DBTag.tag)
                .order_by(DBTag.id)
            ).all()

            return {tag: count for tag, count in result}
