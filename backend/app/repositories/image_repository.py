"""
TreeSpotter Backend - Image Metadata Repository
================================================

What:  Owner-scoped CRUD for image metadata rows.
How:   Metadata only, except delete(), which asks the storage collaborator
       (FileService) to remove the file before the row goes. A file that is
       already missing blocks the delete so no row is removed without its file
       being accounted for.
"""

from datetime import datetime
from pathlib import PurePosixPath
from typing import List

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import FileStorageError, NotFoundError
from app.models.image import Image
from app.repositories.base import BaseRepository
from app.schemas.image import ImageResponse
from app.services.file_service import STORED_PREFIX, FileService


def public_path(path: str) -> str:
    """
    Client-facing form of a stored path: "uploads/x.jpg" becomes "/uploads/x.jpg".

    Only the file name is taken from the row, so a legacy absolute path never
    exposes where the upload directory lives on the server.
    """
    return f"/{STORED_PREFIX}/{PurePosixPath(path).name}"


class ImageRepository(BaseRepository):
    """Data access for the `images` table."""

    def __init__(self, session: AsyncSession, files: FileService):
        super().__init__(session)
        self.files = files

    async def list_for_tree(self, tree_id: int, user_id: int) -> List[ImageResponse]:
        with self._store_errors("list images of tree", tree_id):
            result = await self.session.execute(
                select(Image)
                .where(Image.tree_id == tree_id, Image.user_id == user_id)
                .order_by(Image.id)
            )
            images = list(result.scalars().all())

        return [
            ImageResponse(
                id=image.id,
                path=public_path(image.path),
                description=image.description,
                datetime=image.taken_at,
            )
            for image in images
        ]

    async def insert(self, path: str, description: str, user_id: int, tree_id: int) -> int:
        """Record an image whose file already exists at path."""
        image = Image(path=path, description=description, user_id=user_id, tree_id=tree_id)
        with self._store_errors("insert image"):
            self.session.add(image)
            await self.session.flush()

        self.logger.info("Uploaded image for user %s with path: %s", user_id, path)
        return image.id

    async def update_description(self, image_id: int, description: str, user_id: int) -> None:
        with self._store_errors("update image description", image_id):
            result = await self.session.execute(
                update(Image)
                .where(Image.id == image_id, Image.user_id == user_id)
                .values(description=description)
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="image", resource_id=image_id)
        self.logger.info("Updated image description for image %s", image_id)

    async def update_datetime(self, image_id: int, new_datetime: datetime, user_id: int) -> None:
        with self._store_errors("update image datetime", image_id):
            result = await self.session.execute(
                update(Image)
                .where(Image.id == image_id, Image.user_id == user_id)
                .values(taken_at=new_datetime)
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="image", resource_id=image_id)
        self.logger.info("Updated image datetime for image %s", image_id)

    async def delete(self, image_id: int, user_id: int) -> None:
        """
        Remove the image file, then its metadata row.

        Raises:
            NotFoundError: no image with this ID for this user
            FileStorageError: the file is missing or could not be removed;
                the row is left in place
        """
        with self._store_errors("find image path", image_id):
            result = await self.session.execute(
                select(Image.path).where(Image.id == image_id, Image.user_id == user_id)
            )
            path = result.scalar_one_or_none()

        if path is None:
            raise NotFoundError(resource="image", resource_id=image_id)

        if not await self.files.file_exists(path):
            raise FileStorageError(
                message="The image file is missing from storage",
                context={"image_id": image_id, "path": path},
            )

        await self.files.remove_file(path)

        with self._store_errors("delete image", image_id):
            result = await self.session.execute(
                delete(Image).where(Image.id == image_id, Image.user_id == user_id)
            )

        if result.rowcount == 0:
            raise NotFoundError(resource="image", resource_id=image_id)
        self.logger.info("Deleted image for user %s with ID: %s", user_id, image_id)

    async def delete_for_tree(self, tree_id: int, user_id: int) -> List[str]:
        """
        Delete every image row of a tree and return the stored paths.

        Files are not touched; the caller cleans them up once the rows are gone.
        """
        with self._store_errors("delete images of tree", tree_id):
            result = await self.session.execute(
                select(Image.path).where(Image.tree_id == tree_id, Image.user_id == user_id)
            )
            paths = list(result.scalars().all())
            if paths:
                await self.session.execute(
                    delete(Image).where(Image.tree_id == tree_id, Image.user_id == user_id)
                )

        if paths:
            self.logger.info("Deleted %d image(s) of tree %s", len(paths), tree_id)
        return paths
