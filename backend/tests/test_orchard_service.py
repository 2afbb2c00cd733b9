"""
TreeSpotter Backend - Orchard Service Tests
============================================

What:  The meadow/tree consistency rules end to end through OrchardService.

Test Strategy:
    ✅ tree_ids equals the trees pointing at the meadow after insert/delete runs
    ✅ insert then delete restores the list
    ✅ meadow delete cascades to trees, images and files
    ✅ missing listed trees are skipped and reported, store errors roll back
    ✅ owner isolation on every read and write
    ✅ reconcile repairs drifted lists
    ✅ image files of deleted trees survive a rollback, go on commit
    ✅ list-changing operations lock the meadow row
"""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from app.database import commit_session
from app.exceptions import DatabaseError, NotFoundError
from app.models.tree import Tree
from app.models.user import User
from app.repositories.image_repository import ImageRepository
from app.repositories.meadow_repository import MeadowRepository
from app.repositories.tree_repository import TreeRepository
from app.schemas.meadow import MeadowCreate, MeadowUpdate
from app.schemas.tree import TreeCreate
from app.services.orchard_service import OrchardService

PLANTED = datetime(2024, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def service(files) -> OrchardService:
    return OrchardService(files=files)


def _tree(meadow_id: int, kind: str = "Oak") -> TreeCreate:
    return TreeCreate(plant_date=PLANTED, meadow_id=meadow_id, position="10,20", type=kind)


def _photo(upload_dir: str) -> Path:
    stored = Path(upload_dir) / "photo.jpg"
    stored.write_bytes(b"\xff\xd8\xff")
    return stored


async def _trees_pointing_at(db_session, meadow_id: int, user_id: int):
    result = await db_session.execute(
        select(Tree.id).where(Tree.meadow_id == meadow_id, Tree.user_id == user_id)
    )
    return set(result.scalars().all())


class TestTreeIdsInvariant:

    @pytest.mark.asyncio
    async def test_list_matches_rows_after_mixed_sequence(self, db_session, user, service):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)

        created = [await service.create_tree(db_session, _tree(meadow_id), user) for _ in range(4)]
        await service.delete_tree(db_session, created[1], user)
        created.append(await service.create_tree(db_session, _tree(meadow_id), user))
        await service.delete_tree(db_session, created[0], user)

        meadow = await service.get_meadow(db_session, meadow_id, user)
        assert set(meadow.tree_ids) == await _trees_pointing_at(db_session, meadow_id, user)
        assert meadow.tree_ids == [created[2], created[3], created[4]]

    @pytest.mark.asyncio
    async def test_insert_then_delete_round_trip(self, db_session, user, service):
        meadow_id = await service.create_meadow(
            db_session, MeadowCreate(name="M"), user
        )
        existing = await service.create_tree(db_session, _tree(meadow_id), user)
        before = list((await service.get_meadow(db_session, meadow_id, user)).tree_ids)

        tree_id = await service.create_tree(db_session, _tree(meadow_id), user)
        await service.delete_tree(db_session, tree_id, user)

        assert (await service.get_meadow(db_session, meadow_id, user)).tree_ids == before == [existing]

    @pytest.mark.asyncio
    async def test_create_tree_for_missing_meadow_writes_nothing(self, db_session, user, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.create_tree(db_session, _tree(404), user)

        assert exc_info.value.resource == "meadow"
        assert await _trees_pointing_at(db_session, 404, user) == set()

    @pytest.mark.asyncio
    async def test_trees_listed_in_meadow_order(self, db_session, user, service):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        a = await service.create_tree(db_session, _tree(meadow_id, "a"), user)
        b = await service.create_tree(db_session, _tree(meadow_id, "b"), user)

        trees = await service.list_trees_for_meadow(db_session, meadow_id, user)
        assert [t.id for t in trees] == [a, b]


class TestDeleteTree:

    @pytest.mark.asyncio
    async def test_missing_tree_is_not_found(self, db_session, user, service):
        with pytest.raises(NotFoundError):
            await service.delete_tree(db_session, 31337, user)

    @pytest.mark.asyncio
    async def test_images_go_with_the_tree(self, db_session, user, service, files, upload_dir):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        tree_id = await service.create_tree(db_session, _tree(meadow_id), user)
        stored = _photo(upload_dir)
        await ImageRepository(db_session, files).insert("uploads/photo.jpg", "", user, tree_id)

        await service.delete_tree(db_session, tree_id, user)

        assert await ImageRepository(db_session, files).list_for_tree(tree_id, user) == []
        assert stored.exists()

        await commit_session(db_session)
        assert not stored.exists()

    @pytest.mark.asyncio
    async def test_rollback_keeps_image_files(self, db_session, user, service, files, upload_dir):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        tree_id = await service.create_tree(db_session, _tree(meadow_id), user)
        stored = _photo(upload_dir)
        images = ImageRepository(db_session, files)
        image_id = await images.insert("uploads/photo.jpg", "", user, tree_id)
        await commit_session(db_session)

        await service.delete_tree(db_session, tree_id, user)
        await db_session.rollback()
        await commit_session(db_session)

        assert stored.exists()
        assert [i.id for i in await images.list_for_tree(tree_id, user)] == [image_id]

        await images.delete(image_id, user)
        assert not stored.exists()


class TestDeleteMeadow:

    @pytest.mark.asyncio
    async def test_cascade_removes_trees_and_meadow(self, db_session, user, service):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        tree_ids = [await service.create_tree(db_session, _tree(meadow_id), user) for _ in range(3)]

        report = await service.delete_meadow(db_session, meadow_id, user)

        assert report.deleted_tree_ids == tree_ids
        assert report.skipped_tree_ids == []
        for tree_id in tree_ids:
            with pytest.raises(NotFoundError):
                await service.get_tree(db_session, tree_id, user)
        with pytest.raises(NotFoundError):
            await service.get_meadow(db_session, meadow_id, user)

    @pytest.mark.asyncio
    async def test_stale_listed_id_is_skipped(self, db_session, user, service):
        meadow_id = await service.create_meadow(
            db_session, MeadowCreate(name="M", tree_ids=[9999]), user
        )
        real = await service.create_tree(db_session, _tree(meadow_id), user)

        report = await service.delete_meadow(db_session, meadow_id, user)

        assert report.deleted_tree_ids == [real]
        assert report.skipped_tree_ids == [9999]
        with pytest.raises(NotFoundError):
            await service.get_meadow(db_session, meadow_id, user)

    @pytest.mark.asyncio
    async def test_unlisted_tree_pointing_here_is_also_deleted(self, db_session, user, service):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        orphan = await TreeRepository(db_session).insert(_tree(meadow_id), user)

        report = await service.delete_meadow(db_session, meadow_id, user)

        assert report.deleted_tree_ids == [orphan]
        assert await TreeRepository(db_session).find_by_id(orphan, user) is None

    @pytest.mark.asyncio
    async def test_store_error_aborts_before_meadow_row(self, db_session, user, service):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        await service.create_tree(db_session, _tree(meadow_id), user)
        failure = DatabaseError(context={"operation": "delete tree"})

        with patch.object(TreeRepository, "delete_only", AsyncMock(side_effect=failure)):
            with pytest.raises(DatabaseError):
                await service.delete_meadow(db_session, meadow_id, user)

        assert await MeadowRepository(db_session).find_by_id(meadow_id, user) is not None

    @pytest.mark.asyncio
    async def test_missing_meadow_is_not_found(self, db_session, user, service):
        with pytest.raises(NotFoundError):
            await service.delete_meadow(db_session, 8080, user)

    @pytest.mark.asyncio
    async def test_image_files_removed_only_on_commit(self, db_session, user, service, files, upload_dir):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        tree_id = await service.create_tree(db_session, _tree(meadow_id), user)
        stored = _photo(upload_dir)
        await ImageRepository(db_session, files).insert("uploads/photo.jpg", "", user, tree_id)
        await commit_session(db_session)

        report = await service.delete_meadow(db_session, meadow_id, user)
        assert report.removed_image_paths == ["uploads/photo.jpg"]
        await db_session.rollback()
        assert stored.exists()

        await service.delete_meadow(db_session, meadow_id, user)
        await commit_session(db_session)
        assert not stored.exists()


class TestOwnerIsolation:

    @pytest.mark.asyncio
    async def test_other_owner_gets_not_found_everywhere(self, db_session, user, other_user, service):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="Mine"), user)
        tree_id = await service.create_tree(db_session, _tree(meadow_id), user)

        with pytest.raises(NotFoundError):
            await service.get_meadow(db_session, meadow_id, other_user)
        with pytest.raises(NotFoundError):
            await service.get_tree(db_session, tree_id, other_user)
        with pytest.raises(NotFoundError):
            await service.list_trees_for_meadow(db_session, meadow_id, other_user)
        with pytest.raises(NotFoundError):
            await service.update_meadow(db_session, meadow_id, MeadowUpdate(name="x"), other_user)
        with pytest.raises(NotFoundError):
            await service.create_tree(db_session, _tree(meadow_id), other_user)
        with pytest.raises(NotFoundError):
            await service.delete_tree(db_session, tree_id, other_user)
        with pytest.raises(NotFoundError):
            await service.delete_meadow(db_session, meadow_id, other_user)

        meadow = await service.get_meadow(db_session, meadow_id, user)
        assert meadow.name == "Mine"
        assert meadow.tree_ids == [tree_id]


class TestReconcile:

    @pytest.mark.asyncio
    async def test_repairs_missing_and_stale_ids(self, db_session, user, service):
        meadow_id = await service.create_meadow(
            db_session, MeadowCreate(name="M", tree_ids=[555]), user
        )
        listed = await service.create_tree(db_session, _tree(meadow_id), user)
        unlisted = await TreeRepository(db_session).insert(_tree(meadow_id), user)

        report = await service.reconcile_meadow(db_session, meadow_id, user)

        assert report.tree_ids == [listed, unlisted]
        assert report.added == [unlisted]
        assert report.removed == [555]
        assert (await service.get_meadow(db_session, meadow_id, user)).tree_ids == [listed, unlisted]

    @pytest.mark.asyncio
    async def test_consistent_list_is_left_alone(self, db_session, user, service):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        tree_id = await service.create_tree(db_session, _tree(meadow_id), user)

        with patch.object(MeadowRepository, "set_tree_ids", AsyncMock()) as set_ids:
            report = await service.reconcile_meadow(db_session, meadow_id, user)

        set_ids.assert_not_called()
        assert (report.added, report.removed, report.tree_ids) == ([], [], [tree_id])


class TestExampleScenario:

    @pytest.mark.asyncio
    async def test_meadow_and_tree_lifecycle(self, db_session, service):
        db_session.add(User(id=7, username="grower", password="x", email="grower@example.com"))
        await db_session.flush()

        meadow_id = await service.create_meadow(
            db_session,
            MeadowCreate(location="North Field", name="Oak Grove", size=2.5),
            7,
        )
        assert meadow_id == 1
        assert (await service.get_meadow(db_session, 1, 7)).tree_ids == []

        tree_id = await service.create_tree(
            db_session,
            TreeCreate(plant_date="2024-03-01T00:00:00Z", meadow_id=1, position="10,20", type="Oak"),
            7,
        )
        assert tree_id == 1
        assert (await service.get_meadow(db_session, 1, 7)).tree_ids == [1]

        await service.delete_tree(db_session, 1, 7)
        assert (await service.get_meadow(db_session, 1, 7)).tree_ids == []

        await service.delete_meadow(db_session, 1, 7)
        assert await MeadowRepository(db_session).find_by_id(1, 7) is None
        assert await TreeRepository(db_session).find_by_id(1, 7) is None


class TestRowLocking:

    @pytest.mark.asyncio
    async def test_create_tree_locks_parent_meadow(self, db_session, user, service, locked_meadow_reads):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)

        await service.create_tree(db_session, _tree(meadow_id), user)

        assert locked_meadow_reads
        assert all("meadows.id = " in sql for sql in locked_meadow_reads)

    @pytest.mark.asyncio
    async def test_delete_meadow_locks_before_cascading(self, db_session, user, service, locked_meadow_reads):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)
        locked_meadow_reads.clear()

        await service.delete_meadow(db_session, meadow_id, user)

        assert len(locked_meadow_reads) == 1

    @pytest.mark.asyncio
    async def test_reconcile_locks_the_meadow(self, db_session, user, service, locked_meadow_reads):
        meadow_id = await service.create_meadow(db_session, MeadowCreate(name="M"), user)

        await service.reconcile_meadow(db_session, meadow_id, user)

        assert len(locked_meadow_reads) == 1
