"""
TreeSpotter Backend - Orchard Service (Meadow/Tree Consistency)
================================================================

What:  Coordinates the meadow ↔ tree ↔ image lifecycle: tree creation, tree
       deletion, meadow cascade deletion and tree_ids reconciliation, plus the
       plain reads/updates the routes need.
How:   Builds repositories bound to the request session for every call. All
       steps of one operation run in that session's transaction (committed or
       rolled back by get_db_session), and the parent meadow row is locked
       before its tree_ids list is read.
Who:   Called by the meadow and tree routers.

Consistency rules:
    create_tree    lock meadow → insert tree → append ID to meadow.tree_ids
    delete_tree    delete tree images → delete tree → remove ID from tree_ids
    delete_meadow  lock meadow → for every tree in tree_ids (and every tree
                   whose meadow_id still points here): delete images, delete
                   row → delete meadow row

Cascade failure policy:
    A listed tree ID without a row is logged and reported as skipped; the
    meadow deletion continues since there is nothing left to orphan. Any store
    error aborts the whole operation and the transaction rolls back.

Image files of cascaded trees are removed only after the transaction commits
(see app.database.call_after_commit).

Reads that find nothing raise NotFoundError, so every absent entity gives the
same 404 regardless of endpoint.
"""

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import call_after_commit
from app.exceptions import NotFoundError
from app.models.meadow import Meadow
from app.models.tree import Tree
from app.repositories.image_repository import ImageRepository
from app.repositories.meadow_repository import MeadowRepository
from app.repositories.tree_repository import TreeRepository
from app.schemas.meadow import MeadowCreate, MeadowUpdate
from app.schemas.tree import TreeCreate, TreeUpdate
from app.services.file_service import FileService, file_service

logger = logging.getLogger(__name__)


@dataclass
class CascadeReport:
    """What a meadow deletion actually removed."""
    meadow_id: int
    deleted_tree_ids: List[int] = field(default_factory=list)
    skipped_tree_ids: List[int] = field(default_factory=list)
    removed_image_paths: List[str] = field(default_factory=list)


@dataclass
class ReconcileReport:
    meadow_id: int
    tree_ids: List[int]
    added: List[int]
    removed: List[int]


class OrchardService:
    """
    Stateless orchestrator; receives the db session for each call.

    Args:
        files: storage collaborator used to clean up image files of deleted
               trees (defaults to the module singleton)
    """

    def __init__(self, files: Optional[FileService] = None):
        self.files = files or file_service

    def _repositories(self, db: AsyncSession):
        meadows = MeadowRepository(db)
        trees = TreeRepository(db, meadows)
        images = ImageRepository(db, self.files)
        return meadows, trees, images

    async def _cleanup_files(self, paths: List[str]) -> None:
        for path in paths:
            await self.files.cleanup_file(path)

    def _cleanup_after_commit(self, db: AsyncSession, paths: List[str]) -> None:
        # A rollback brings the image rows back, so their files must survive it
        if paths:
            call_after_commit(db, partial(self._cleanup_files, list(paths)))

    # ── Meadows ───────────────────────────────────────────────────────────

    async def list_meadows(self, db: AsyncSession, user_id: int) -> List[Meadow]:
        return await MeadowRepository(db).find_all(user_id)

    async def get_meadow(self, db: AsyncSession, meadow_id: int, user_id: int) -> Meadow:
        meadow = await MeadowRepository(db).find_by_id(meadow_id, user_id)
        if meadow is None:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)
        return meadow

    async def create_meadow(self, db: AsyncSession, data: MeadowCreate, user_id: int) -> int:
        return await MeadowRepository(db).insert(data, user_id)

    async def update_meadow(
        self, db: AsyncSession, meadow_id: int, data: MeadowUpdate, user_id: int
    ) -> None:
        await MeadowRepository(db).update(meadow_id, data, user_id)

    async def delete_meadow(self, db: AsyncSession, meadow_id: int, user_id: int) -> CascadeReport:
        """
        Delete a meadow together with all of its trees and their images.

        Returns:
            CascadeReport listing deleted and skipped tree IDs

        Raises:
            NotFoundError: the meadow does not exist for this user
            DatabaseError: a store call failed; nothing is committed
        """
        meadows, trees, images = self._repositories(db)

        meadow = await meadows.find_by_id(meadow_id, user_id, for_update=True)
        if meadow is None:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)

        victims = list(meadow.tree_ids or [])
        for tree_id in await trees.find_ids_for_meadow(meadow_id, user_id):
            if tree_id not in victims:
                logger.warning(
                    "Tree %s points at meadow %s but is missing from its tree_ids",
                    tree_id,
                    meadow_id,
                )
                victims.append(tree_id)

        report = CascadeReport(meadow_id=meadow_id)
        for tree_id in victims:
            if tree_id in report.deleted_tree_ids or tree_id in report.skipped_tree_ids:
                continue
            report.removed_image_paths.extend(await images.delete_for_tree(tree_id, user_id))
            try:
                await trees.delete_only(tree_id, user_id)
            except NotFoundError:
                logger.warning(
                    "Failed to delete tree ID %s of meadow %s: no such tree",
                    tree_id,
                    meadow_id,
                )
                report.skipped_tree_ids.append(tree_id)
                continue
            report.deleted_tree_ids.append(tree_id)

        await meadows.delete_only(meadow_id, user_id)
        self._cleanup_after_commit(db, report.removed_image_paths)

        logger.info(
            "Meadow %s deleted with %d tree(s), %d skipped",
            meadow_id,
            len(report.deleted_tree_ids),
            len(report.skipped_tree_ids),
        )
        return report

    async def reconcile_meadow(
        self, db: AsyncSession, meadow_id: int, user_id: int
    ) -> ReconcileReport:
        """
        Rebuild tree_ids from the trees that actually point at the meadow.

        Keeps the existing order for IDs that stay, appends newly found ones.
        """
        meadows, trees, _ = self._repositories(db)

        meadow = await meadows.find_by_id(meadow_id, user_id, for_update=True)
        if meadow is None:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)

        actual = await trees.find_ids_for_meadow(meadow_id, user_id)
        actual_set = set(actual)
        current = list(meadow.tree_ids or [])

        kept: List[int] = []
        for tree_id in current:
            if tree_id in actual_set and tree_id not in kept:
                kept.append(tree_id)
        removed = [tree_id for tree_id in current if tree_id not in actual_set]
        added = [tree_id for tree_id in actual if tree_id not in kept]
        reconciled = kept + added

        if reconciled != current:
            await meadows.set_tree_ids(meadow_id, reconciled, user_id)
            logger.warning(
                "Reconciled meadow %s tree_ids: added=%s removed=%s",
                meadow_id,
                added,
                removed,
            )

        return ReconcileReport(
            meadow_id=meadow_id,
            tree_ids=reconciled,
            added=added,
            removed=removed,
        )

    # ── Trees ─────────────────────────────────────────────────────────────

    async def get_tree(self, db: AsyncSession, tree_id: int, user_id: int) -> Tree:
        tree = await TreeRepository(db).find_by_id(tree_id, user_id)
        if tree is None:
            raise NotFoundError(resource="tree", resource_id=tree_id)
        return tree

    async def list_trees_for_meadow(
        self, db: AsyncSession, meadow_id: int, user_id: int
    ) -> List[Tree]:
        meadows, trees, _ = self._repositories(db)
        if await meadows.find_by_id(meadow_id, user_id) is None:
            raise NotFoundError(resource="meadow", resource_id=meadow_id)
        return await trees.find_all_for_meadow(meadow_id, user_id)

    async def create_tree(self, db: AsyncSession, data: TreeCreate, user_id: int) -> int:
        """
        Insert a tree and append its ID to the parent meadow's list.

        Raises:
            NotFoundError: the parent meadow does not exist for this user;
                no tree row is written
        """
        meadows, trees, _ = self._repositories(db)

        if await meadows.find_by_id(data.meadow_id, user_id, for_update=True) is None:
            raise NotFoundError(resource="meadow", resource_id=data.meadow_id)

        tree_id = await trees.insert(data, user_id)
        await meadows.update_tree_ids(data.meadow_id, tree_id, False, user_id)

        logger.info("Updated meadow %s with new tree ID %s", data.meadow_id, tree_id)
        return tree_id

    async def update_tree(
        self, db: AsyncSession, tree_id: int, data: TreeUpdate, user_id: int
    ) -> None:
        await TreeRepository(db).update(tree_id, data, user_id)

    async def delete_tree(self, db: AsyncSession, tree_id: int, user_id: int) -> None:
        """
        Delete a tree, its images, and its entry in the meadow's list.

        Raises:
            NotFoundError: the tree does not exist for this user
        """
        _, trees, images = self._repositories(db)

        if await trees.find_by_id(tree_id, user_id) is None:
            raise NotFoundError(resource="tree", resource_id=tree_id)

        paths = await images.delete_for_tree(tree_id, user_id)
        await trees.delete_for_user(tree_id, user_id)
        self._cleanup_after_commit(db, paths)


orchard_service = OrchardService()
