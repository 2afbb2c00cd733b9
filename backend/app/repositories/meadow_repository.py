"""
TreeSpotter Backend - Meadow Repository
========================================

What:  Owner-scoped CRUD for meadows, plus the only code path that writes the
       denormalized tree_ids list.
How:   Every statement filters on (id, user_id). Read-modify-write of tree_ids
       locks the meadow row first (SELECT ... FOR UPDATE) so concurrent tree
       inserts/deletes on the same meadow serialize instead of overwriting each
       other's list.
Who:   TreeRepository (list maintenance) and OrchardService.

The cascade half of meadow deletion lives in OrchardService.delete_meadow;
delete_only here removes the row and nothing else.
"""

from typing import List, Optional

from sqlalchemy import delete, select, update

from app.exceptions import NotFoundError
from app.models.meadow import Meadow
from app.repositories.base import BaseRepository
from app.schemas.meadow import MeadowCreate, MeadowUpdate


class MeadowRepository(BaseRepository):
    """Data access for the `meadows` table."""

    async def find_by_id(
        self,
        meadow_id: int,
        user_id: int,
        for_update: bool = False,
    ) -> Optional[Meadow]:
        """
        Fetch one meadow owned by user_id.

        Returns None when no owned row matches. With for_update=True the row
        stays locked until the surrounding transaction ends.
        """
        stmt = (
            select(Meadow)
            .where(Meadow.id == meadow_id, Meadow.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()

        with self._store_errors("find meadow", meadow_id):
            result = await self.session.execute(stmt)
            meadow = result.scalar_one_or_none()

        if meadow is None:
            self.logger.info("No meadow found with ID %s for user %s", meadow_id, user_id)
        else:
            self.logger.debug("Found meadow: %r", meadow)
        return meadow

    async def find_all(self, user_id: int) -> List[Meadow]:
        with self._store_errors("list meadows"):
            result = await self.session.execute(
                select(Meadow)
                .where(Meadow.user_id == user_id)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def insert(self, data: MeadowCreate, user_id: int) -> int:
        """
        Insert a meadow for user_id and return its new ID.

        Caller-supplied tree_ids are stored as given, without checking that
        those trees exist.
        """
        meadow = Meadow(
            location=data.location,
            name=data.name,
            size=data.size,
            tree_ids=list(data.tree_ids),
            user_id=user_id,
        )
        with self._store_errors("insert meadow"):
            self.session.add(meadow)
            await self.session.flush()

        self.logger.info("Inserted a meadow for the user %s with ID: %s", user_id, meadow.id)
        return meadow.id

    async def update(self, meadow_id: int, data: MeadowUpdate, user_id: int) -> None:
        """Update location, name and size. tree_ids is never touched here."""
        with self._store_errors("update meadow", meadow_id):
            result = await self.session.execute(
                update(Meadow)
                .where(Meadow.id == meadow_id, Meadow.user_id == user_id)
                .values(location=data.location, name=data.name, size=data.size)
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)
        self.logger.info("Updated meadow %s", meadow_id)

    async def update_tree_ids(
        self,
        meadow_id: int,
        tree_id: int,
        should_remove: bool,
        user_id: int,
    ) -> List[int]:
        """
        Append one tree ID to, or remove one occurrence from, a meadow's list.

        Removing an ID that is not in the list is a no-op that still succeeds.
        The full list is written back and returned.

        Raises:
            NotFoundError: the meadow does not exist for this user
        """
        meadow = await self.find_by_id(meadow_id, user_id, for_update=True)
        if meadow is None:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)

        tree_ids = list(meadow.tree_ids or [])
        self.logger.debug("Current tree_ids for meadow %s: %s", meadow_id, tree_ids)

        if should_remove:
            if tree_id in tree_ids:
                tree_ids.remove(tree_id)
        else:
            tree_ids.append(tree_id)

        await self.set_tree_ids(meadow_id, tree_ids, user_id)
        return tree_ids

    async def set_tree_ids(self, meadow_id: int, tree_ids: List[int], user_id: int) -> None:
        """Overwrite the whole list. Callers must hold the meadow row lock."""
        with self._store_errors("update meadow tree_ids", meadow_id):
            result = await self.session.execute(
                update(Meadow)
                .where(Meadow.id == meadow_id, Meadow.user_id == user_id)
                .values(tree_ids=list(tree_ids))
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)
        self.logger.debug("New tree_ids for meadow %s: %s", meadow_id, tree_ids)

    async def delete_only(self, meadow_id: int, user_id: int) -> None:
        """Delete the meadow row. Its trees must already be gone."""
        with self._store_errors("delete meadow", meadow_id):
            result = await self.session.execute(
                delete(Meadow).where(Meadow.id == meadow_id, Meadow.user_id == user_id)
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)
        self.logger.info("Deleted meadow for user %s with ID: %s", user_id, meadow_id)
