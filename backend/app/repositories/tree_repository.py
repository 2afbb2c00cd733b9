"""
TreeSpotter Backend - Tree Repository
======================================

What:  Owner-scoped CRUD for trees.
How:   Bound to the same session as the MeadowRepository it keeps informed, so
       a tree delete and the matching tree_ids update share one transaction.

Primitives vs. composed operations:
    insert / delete_only   touch the trees table only
    delete_for_user        delete_only + remove the ID from the parent list
Tree insertion's list append is done by OrchardService.create_tree, which
locks the parent meadow before inserting.
"""

from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, TreeSpotterError
from app.models.tree import Tree
from app.repositories.base import BaseRepository
from app.repositories.meadow_repository import MeadowRepository
from app.schemas.tree import TreeCreate, TreeUpdate


class TreeRepository(BaseRepository):
    """Data access for the `trees` table."""

    def __init__(self, session: AsyncSession, meadows: Optional[MeadowRepository] = None):
        super().__init__(session)
        self.meadows = meadows or MeadowRepository(session)

    async def find_by_id(self, tree_id: int, user_id: int) -> Optional[Tree]:
        with self._store_errors("find tree", tree_id):
            result = await self.session.execute(
                select(Tree)
                .where(Tree.id == tree_id, Tree.user_id == user_id)
                .execution_options(populate_existing=True)
            )
            tree = result.scalar_one_or_none()

        if tree is None:
            self.logger.info("No tree found with ID: %s and user ID: %s", tree_id, user_id)
        else:
            self.logger.debug("Found tree: %r", tree)
        return tree

    async def find_all_for_meadow(self, meadow_id: int, user_id: int) -> List[Tree]:
        """
        Trees listed in the meadow's tree_ids, in list order.

        Returns [] without issuing a tree query when the meadow is absent or
        its list is empty.
        """
        meadow = await self.meadows.find_by_id(meadow_id, user_id)
        if meadow is None or not meadow.tree_ids:
            return []

        tree_ids = list(meadow.tree_ids)
        with self._store_errors("list trees of meadow", meadow_id):
            result = await self.session.execute(
                select(Tree)
                .where(Tree.id.in_(tree_ids), Tree.user_id == user_id)
                .execution_options(populate_existing=True)
            )
            trees = list(result.scalars().all())

        order = {tree_id: i for i, tree_id in enumerate(tree_ids)}
        trees.sort(key=lambda t: order.get(t.id, len(order)))
        return trees

    async def find_ids_for_meadow(self, meadow_id: int, user_id: int) -> List[int]:
        """IDs of the trees whose meadow_id points at this meadow."""
        with self._store_errors("list tree ids of meadow", meadow_id):
            result = await self.session.execute(
                select(Tree.id)
                .where(Tree.meadow_id == meadow_id, Tree.user_id == user_id)
                .order_by(Tree.id)
            )
            return list(result.scalars().all())

    async def insert(self, data: TreeCreate, user_id: int) -> int:
        """Insert the row only; the parent meadow's list is left alone."""
        tree = Tree(
            plant_date=data.plant_date,
            meadow_id=data.meadow_id,
            position=data.position,
            type=data.type,
            user_id=user_id,
        )
        with self._store_errors("insert tree"):
            self.session.add(tree)
            await self.session.flush()

        self.logger.info("Inserted a tree for the user %s with ID: %s", user_id, tree.id)
        return tree.id

    async def update(self, tree_id: int, data: TreeUpdate, user_id: int) -> None:
        """Update plant_date, position and type."""
        with self._store_errors("update tree", tree_id):
            result = await self.session.execute(
                update(Tree)
                .where(Tree.id == tree_id, Tree.user_id == user_id)
                .values(plant_date=data.plant_date, position=data.position, type=data.type)
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="tree", resource_id=tree_id)
        self.logger.info("Updated tree %s", tree_id)

    async def delete_only(self, tree_id: int, user_id: int) -> None:
        """Delete the row without touching the parent meadow's tree_ids."""
        with self._store_errors("delete tree", tree_id):
            result = await self.session.execute(
                delete(Tree).where(Tree.id == tree_id, Tree.user_id == user_id)
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="tree", resource_id=tree_id)
        self.logger.info("Deleted tree for user %s with ID: %s", user_id, tree_id)

    async def delete_for_user(self, tree_id: int, user_id: int) -> int:
        """
        Delete a tree and drop its ID from the parent meadow's list.

        Returns the parent meadow ID.

        Raises:
            NotFoundError: the tree does not exist for this user (nothing changed)
            TreeSpotterError: the list update failed after the row was deleted;
                the request transaction rolls both back
        """
        tree = await self.find_by_id(tree_id, user_id)
        if tree is None:
            raise NotFoundError(resource="tree", resource_id=tree_id)

        meadow_id = tree.meadow_id
        await self.delete_only(tree_id, user_id)

        try:
            await self.meadows.update_tree_ids(meadow_id, tree_id, True, user_id)
        except TreeSpotterError as e:
            self.logger.warning(
                "Tree %s deleted but failed to update meadow %s: %s",
                tree_id,
                meadow_id,
                e.message,
            )
            raise

        return meadow_id
