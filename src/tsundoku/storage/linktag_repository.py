"""Repository for the associations between links and tags."""
import logging
from typing import List, Optional

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from tsundoku.exceptions import ReferentialError
from tsundoku.models.db_models import DBLink, DBTag, link_tags
from tsundoku.storage.base import Repository

logger = logging.getLogger(__name__)


class LinkTagRepository(Repository):
    """Repository for managing which tags are attached to which links.

    Both ends of an association are checked here before inserting, rather
    than relying on SQLite foreign key enforcement, which is off unless the
    connection enables it.
    """

    def link_tag(
        self, link_id: int, tag_id: int, session: Optional[Session] = None
    ) -> None:
        """Attach a tag to a link.

        Attaching a tag that is already on the link does nothing.

        Args:
            link_id: The link identifier.
            tag_id: The tag identifier.
            session: Optional session of an enclosing transaction.

        Raises:
            ReferentialError: If the link or the tag does not exist.
        """
        with self.session_scope(session, operation="link_tag", write=True) as s:
            if s.get(DBLink, link_id) is None:
                raise ReferentialError(
                    f"Cannot tag missing link {link_id}",
                    link_id=link_id,
                    tag_id=tag_id,
                )
            if s.get(DBTag, tag_id) is None:
                raise ReferentialError(
                    f"Cannot attach missing tag {tag_id}",
                    link_id=link_id,
                    tag_id=tag_id,
                )

            existing = s.scalar(
                select(link_tags.c.id).where(
                    (link_tags.c.link_id == link_id) & (link_tags.c.tag_id == tag_id)
                )
            )
            if existing is not None:
                return

            s.execute(insert(link_tags).values(link_id=link_id, tag_id=tag_id))
            logger.debug(f"Tagged link {link_id} with tag {tag_id}")

    def tags_for_link(self, link_id: int, session: Optional[Session] = None) -> List[str]:
        """Get the tag texts attached to a link, in the order they were attached."""
        with self.session_scope(session, operation="tags_for_link") as s:
            result = s.execute(
                select(DBTag.tag)
                .select_from(link_tags)
                .join(DBTag, link_tags.c.tag_id == DBTag.id)
                .where(link_tags.c.link_id == link_id)
                .order_by(link_tags.c.id)
            ).all()

            return [row[0] for row in result]

    def link_ids_for_tag(self, tag: str, session: Optional[Session] = None) -> List[int]:
        """Get the identifiers of all links carrying a tag, in identifier order."""
        with self.session_scope(session, operation="link_ids_for_tag") as s:
            result = s.execute(
                select(link_tags.c.link_id)
                .select_from(link_tags)
                .join(DBTag, link_tags.c.tag_id == DBTag.id)
                .where(DBTag.tag == tag)
                .order_by(link_tags.c.link_id)
            ).all()

            return [row[0] for row in result]
