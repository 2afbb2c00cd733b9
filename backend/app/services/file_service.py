"""
TreeSpotter Backend - File Storage Service
===========================================

What:  Upload collaborator and storage backend for tree images: validates
       uploads, writes them to the upload directory, checks for and removes
       stored files.
How:   Extension, size and content MIME checks, then an async write under a
       UUID file name. The images table keeps the path relative to the upload
       root ("uploads/3f2c...e1.jpg"), never where UPLOAD_DIR sits on disk;
       resolve() maps it back to the file.
Who:   ImageService (upload), ImageRepository (delete), OrchardService
       (cleanup after cascades).

Security Model:
    1. Extension check:   fast rejection before reading content
    2. Size check:        10MB ceiling
    3. MIME type check:   libmagic inspects the header bytes, so a renamed
                          file is still caught
    4. UUID filename:     no user input ends up in the path
"""

import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional

import aiofiles
import aiofiles.os

from app.config import settings
from app.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

# Leading segment of every stored image path
STORED_PREFIX = "uploads"


class FileService:
    """
    Manages the lifecycle of image files on disk.

    Lifecycle of an uploaded file:
        1. validate_and_store(): extension, size, MIME, then write
        2. The returned path is recorded by ImageRepository.insert()
        3. ImageRepository.delete() checks file_exists() and calls remove_file()
        4. Failed uploads and tree cascades call cleanup_file() (best effort)
    """

    def __init__(self, upload_dir: Optional[str] = None):
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with upload_dir=%s", self.upload_dir)

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized extension (lowercase with dot).

        Raises:  ValidationError if the extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="treeImage",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the reported Content-Length first, then the actual byte count.

        Raises:
            ValidationError for empty or oversized files
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded file is empty.",
                field="treeImage",
            )

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="treeImage",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) is too large; maximum is {max_mb:.0f}MB.",
                field="treeImage",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, file_content: bytes) -> str:
        """
        Determine the real content type from the file's magic bytes.

        Returns:
            Detected MIME type string (e.g. "image/jpeg")

        Raises:
            ValidationError if the type is not an allowed image type
            FileStorageError if detection itself fails
        """
        import magic

        try:
            mime_type = magic.from_buffer(file_content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG or JPEG)."
                ),
                field="treeImage",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )

        return mime_type

    def _generate_storage_path(self, extension: str) -> Path:
        return self.upload_dir / f"{uuid.uuid4()}{extension}"

    def resolve(self, stored_path: str) -> Path:
        """
        Location on disk of a stored path.

        Files sit flat in the upload directory, so only the final segment
        matters; "uploads/x.jpg" and legacy absolute paths both map to
        upload_dir/x.jpg.
        """
        return self.upload_dir / PurePosixPath(stored_path).name

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write validated content to the upload directory.

        Returns: the stored path relative to the upload root ("uploads/<uuid>.jpg").

        Raises:
            FileStorageError if the write fails.
        """
        path = self._generate_storage_path(extension)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", path, len(content))
        return f"{STORED_PREFIX}/{path.name}"

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Complete validation and storage pipeline; cheapest checks first.

        Returns: the stored path, ready to be recorded as image metadata.
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content)
        return await self.store_file(content, ext)

    async def file_exists(self, file_path: str) -> bool:
        return await aiofiles.os.path.isfile(self.resolve(file_path))

    async def remove_file(self, file_path: str) -> None:
        """
        Delete a stored file.

        Raises:
            FileStorageError if the file is missing or cannot be removed.
        """
        try:
            await aiofiles.os.remove(self.resolve(file_path))
        except FileNotFoundError:
            raise FileStorageError(
                message="The image file is missing from storage",
                context={"path": file_path},
            )
        except OSError as e:
            logger.error("Failed to delete file %s: %s", file_path, str(e))
            raise FileStorageError(
                message="Failed to delete the image file.",
                context={"path": file_path, "os_error": str(e)},
            )
        logger.info("Successfully deleted file: %s", file_path)

    async def cleanup_file(self, file_path: str) -> None:
        """
        Best-effort removal used after failed uploads and tree cascades.

        A missing file is fine; other failures are logged, not raised.
        """
        target = self.resolve(file_path)
        try:
            if await aiofiles.os.path.exists(target):
                await aiofiles.os.remove(target)
                logger.info("Cleaned up file: %s", file_path)
            else:
                logger.debug("Cleanup: file already gone: %s", file_path)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))


file_service = FileService()
