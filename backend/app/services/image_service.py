"""
TreeSpotter Backend - Image Service
====================================

What:  Business logic for tree images: upload, listing, edit, delete.
How:   Upload validates and stores the file through FileService, then records
       the metadata row. If recording fails the stored file is removed again,
       so a failed upload leaves nothing behind.
Who:   Called by the image routes under /trees.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.repositories.image_repository import ImageRepository, public_path
from app.repositories.tree_repository import TreeRepository
from app.schemas.image import ImageResponse, ImageUpdate
from app.services.file_service import FileService, file_service

logger = logging.getLogger(__name__)


class ImageService:
    """Stateless; receives the db session for each call."""

    def __init__(self, files: Optional[FileService] = None):
        self.files = files or file_service

    async def _require_tree(self, db: AsyncSession, tree_id: int, user_id: int) -> None:
        if await TreeRepository(db).find_by_id(tree_id, user_id) is None:
            raise NotFoundError(resource="tree", resource_id=tree_id)

    async def upload_image(
        self,
        db: AsyncSession,
        tree_id: int,
        user_id: int,
        filename: str,
        content: bytes,
        description: str = "",
        content_length: Optional[int] = None,
    ) -> Tuple[int, str]:
        """
        Store an uploaded image for a tree.

        Returns:
            (image_id, public path)

        Raises:
            NotFoundError: the tree does not exist for this user
            ValidationError: type or size rejected
            FileStorageError: the file could not be written
        """
        await self._require_tree(db, tree_id, user_id)

        path = await self.files.validate_and_store(filename, content, content_length)

        try:
            image_id = await ImageRepository(db, self.files).insert(
                path, description, user_id, tree_id
            )
        except Exception:
            logger.error("Recording image metadata failed, removing %s", path)
            await self.files.cleanup_file(path)
            raise

        return image_id, public_path(path)

    async def list_images(self, db: AsyncSession, tree_id: int, user_id: int) -> List[ImageResponse]:
        await self._require_tree(db, tree_id, user_id)
        return await ImageRepository(db, self.files).list_for_tree(tree_id, user_id)

    async def update_image(
        self, db: AsyncSession, image_id: int, data: ImageUpdate, user_id: int
    ) -> None:
        """Apply whichever of description/datetime the payload carries."""
        images = ImageRepository(db, self.files)
        if data.new_description is not None:
            await images.update_description(image_id, data.new_description, user_id)
        else:
            await images.update_datetime(image_id, data.new_datetime, user_id)

    async def delete_image(self, db: AsyncSession, image_id: int, user_id: int) -> None:
        await ImageRepository(db, self.files).delete(image_id, user_id)


image_service = ImageService()
