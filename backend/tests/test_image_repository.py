"""
TreeSpotter Backend - Image Repository Tests
=============================================

What:  Image metadata CRUD, path normalization, and the file-first delete.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from app.exceptions import FileStorageError, NotFoundError
from app.repositories.image_repository import ImageRepository, public_path
from app.repositories.meadow_repository import MeadowRepository
from app.repositories.tree_repository import TreeRepository
from app.schemas.meadow import MeadowCreate
from app.schemas.tree import TreeCreate


async def _tree(db_session, user) -> int:
    meadow_id = await MeadowRepository(db_session).insert(MeadowCreate(name="M"), user)
    return await TreeRepository(db_session).insert(
        TreeCreate(plant_date=datetime(2021, 5, 1, tzinfo=timezone.utc), meadow_id=meadow_id),
        user,
    )


def _stored_file(upload_dir: str, name: str = "a.jpg") -> str:
    (Path(upload_dir) / name).write_bytes(b"\xff\xd8\xff")
    return f"uploads/{name}"


class TestPublicPath:

    def test_adds_leading_separator(self):
        assert public_path("uploads/x.jpg") == "/uploads/x.jpg"

    def test_keeps_existing_separator(self):
        assert public_path("/uploads/x.jpg") == "/uploads/x.jpg"

    def test_hides_server_directory(self):
        assert public_path("/tmp/treespotter_abc/uploads/x.jpg") == "/uploads/x.jpg"


class TestImageListing:

    @pytest.mark.asyncio
    async def test_list_normalizes_paths(self, db_session, user, files):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        await repo.insert("uploads/one.jpg", "first", user, tree_id)
        await repo.insert("/uploads/two.jpg", "second", user, tree_id)

        images = await repo.list_for_tree(tree_id, user)

        assert [i.path for i in images] == ["/uploads/one.jpg", "/uploads/two.jpg"]
        assert [i.description for i in images] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_list_is_owner_scoped(self, db_session, user, other_user, files):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        await repo.insert("uploads/one.jpg", "", user, tree_id)

        assert await repo.list_for_tree(tree_id, other_user) == []


class TestImageUpdate:

    @pytest.mark.asyncio
    async def test_update_description(self, db_session, user, files):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        image_id = await repo.insert("uploads/one.jpg", "old", user, tree_id)

        await repo.update_description(image_id, "new", user)

        assert (await repo.list_for_tree(tree_id, user))[0].description == "new"

    @pytest.mark.asyncio
    async def test_update_datetime(self, db_session, user, files):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        image_id = await repo.insert("uploads/one.jpg", "", user, tree_id)

        await repo.update_datetime(image_id, datetime(2019, 1, 2, 3, 4, 5), user)

        taken = (await repo.list_for_tree(tree_id, user))[0].datetime
        assert (taken.year, taken.month, taken.day) == (2019, 1, 2)

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, db_session, user, files):
        with pytest.raises(NotFoundError):
            await ImageRepository(db_session, files).update_description(5, "x", user)


class TestImageDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_file_and_row(self, db_session, user, files, upload_dir):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        path = _stored_file(upload_dir)
        image_id = await repo.insert(path, "", user, tree_id)

        await repo.delete(image_id, user)

        assert not (Path(upload_dir) / "a.jpg").exists()
        assert await repo.list_for_tree(tree_id, user) == []

    @pytest.mark.asyncio
    async def test_missing_file_keeps_row(self, db_session, user, files, upload_dir):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        image_id = await repo.insert("uploads/gone.jpg", "", user, tree_id)

        with pytest.raises(FileStorageError):
            await repo.delete(image_id, user)

        assert len(await repo.list_for_tree(tree_id, user)) == 1

    @pytest.mark.asyncio
    async def test_delete_other_owner_is_not_found(self, db_session, user, other_user, files, upload_dir):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        path = _stored_file(upload_dir)
        image_id = await repo.insert(path, "", user, tree_id)

        with pytest.raises(NotFoundError):
            await repo.delete(image_id, other_user)
        assert (Path(upload_dir) / "a.jpg").exists()

    @pytest.mark.asyncio
    async def test_delete_for_tree_returns_paths(self, db_session, user, files):
        tree_id = await _tree(db_session, user)
        repo = ImageRepository(db_session, files)
        await repo.insert("uploads/a.jpg", "", user, tree_id)
        await repo.insert("uploads/b.jpg", "", user, tree_id)

        paths = await repo.delete_for_tree(tree_id, user)

        assert sorted(paths) == ["uploads/a.jpg", "uploads/b.jpg"]
        assert await repo.list_for_tree(tree_id, user) == []
