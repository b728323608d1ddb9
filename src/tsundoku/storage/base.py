"""Shared session handling for the repositories."""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tsundoku.exceptions import ErrorCode, StorageError

logger = logging.getLogger(__name__)


class Repository:
    """Base class for repositories sharing one engine.

    Every public repository method accepts an optional ``session``. Without
    one, the method runs in its own short transaction and commits. With one,
    it joins the caller's transaction and leaves commit or rollback to the
    caller, which is how the entry service makes a multi-step write atomic.
    """

    def __init__(self, session_factory: sessionmaker):
        """Initialize the repository.

        Args:
            session_factory: SQLAlchemy session factory for database operations.
        """
        self.session_factory = session_factory

    @contextmanager
    def session_scope(
        self,
        session: Optional[Session] = None,
        operation: str = "query",
        write: bool = False,
    ) -> Iterator[Session]:
        """Yield a session, wrapping driver errors in StorageError.

        Args:
            session: Session of an enclosing transaction, if any.
            operation: Operation name recorded on a StorageError.
            write: Whether the operation modifies the database.
        """
        code = ErrorCode.STORAGE_WRITE_FAILED if write else ErrorCode.STORAGE_READ_FAILED
        try:
            if session is not None:
                yield session
            else:
                with self.session_factory() as own_session, own_session.begin():
                    yield own_session
        except SQLAlchemyError as e:
            logger.error(f"Database error during {operation}: {e}")
            raise StorageError(
                f"Database error during {operation}",
                operation=operation,
                code=code,
                original_error=e,
            ) from e
