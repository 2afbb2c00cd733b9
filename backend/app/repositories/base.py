"""
Shared plumbing for the repositories: the bound session, a class logger and
one error context that turns SQLAlchemy failures into DatabaseError.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError


class BaseRepository:
    """Base class binding a repository to one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.logger = logging.getLogger(f"app.repositories.{self.__class__.__name__}")

    @contextmanager
    def _store_errors(self, operation: str, entity_id: Optional[Any] = None) -> Iterator[None]:
        """
        Wrap a block of store calls.

        Application errors pass through untouched; anything SQLAlchemy raises
        is logged with the operation and re-raised as DatabaseError.

        Example:
            with self._store_errors("delete tree", tree_id):
                result = await self.session.execute(stmt)
        """
        try:
            yield
        except SQLAlchemyError as e:
            error_msg = f"{operation} failed"
            if entity_id is not None:
                error_msg += f" for {entity_id}"
            self.logger.error("%s: %s", error_msg, e)
            raise DatabaseError(
                context={
                    "operation": operation,
                    "entity_id": entity_id,
                    "error_type": type(e).__name__,
                },
            ) from e
