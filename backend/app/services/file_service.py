"""
Mom's Yums Backend - File Storage Service
===========================================

What:  Validates, stores, serves and removes recipe card images.
How:   Validates extension, size and decoded content, stores in
       date-organized directories under UUID filenames, resolves stored paths
       for GET /api/files/{path} without letting a request escape the root.
Who:   RecipeService (image attached to a saved recipe) and the files route.

Checks on upload, cheapest first:
    1. Extension:  .png / .jpg / .jpeg
    2. Size:       Content-Length header, then the actual byte count
    3. Content:    Pillow must decode the bytes as JPEG or PNG
    4. Filename:   UUID, never derived from user input

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-5678.jpg
                └── e5f6g7h8-9012.png
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from app.config import Settings
from app.exceptions import FileStorageError, InvalidImageError, NotFoundError, ValidationError
from app.services.preprocessing import validate_image

logger = logging.getLogger(__name__)

# Pillow format name → extension written to disk
FORMAT_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

# Public URL prefix of stored images (see routes/recipes.py)
FILES_URL_PREFIX = "/api/files/"


class FileService:
    """
    Manages the lifecycle of uploaded recipe images.

    Paths handed out and accepted by this service are always relative to
    the storage root ("2024/01/15/<uuid>.jpg").
    """

    def __init__(self, settings: Settings, storage_root: Optional[str] = None):
        """
        Args:
            settings:     Application settings (size limit, default root)
            storage_root: Override of settings.storage_root (used in tests)
        """
        self.max_file_size = settings.max_file_size
        self.max_image_pixels = settings.max_image_pixels
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """Returns the lowercase extension or raises ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Rejects uploads above max_file_size.

        The Content-Length header is checked first, then the real byte count
        since clients can misreport it.
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def detect_extension(self, content: bytes) -> str:
        """
        Decode the bytes and return the extension matching the real format.

        A .jpg upload that is really a PNG is stored as .png.
        """
        image_format = validate_image(content, max_pixels=self.max_image_pixels)
        return FORMAT_EXTENSIONS[image_format]

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new YYYY/MM/DD/<uuid> file."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write validated content to disk.

        Returns:
            Path relative to the storage root.

        Raises:
            FileStorageError if the directory or the file cannot be written.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save the recipe image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full upload pipeline: extension, size, content, then write.

        Returns:
            Path relative to the storage root.
        """
        self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        try:
            extension = self.detect_extension(content)
        except InvalidImageError as e:
            raise ValidationError(
                message="The recipe image must be a valid PNG or JPEG file.",
                field="image",
                context=e.context,
            )
        return await self.store_file(content, extension)

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored relative path back to an existing file.

        Raises:
            NotFoundError when the path leaves the storage root or the file
            does not exist. Both cases look the same to the caller.
        """
        candidate = (self.storage_root / relative_path).resolve()
        if not candidate.is_relative_to(self.storage_root) or not candidate.is_file():
            raise NotFoundError(resource="Image", resource_id=relative_path)
        return candidate

    @staticmethod
    def public_url(relative_path: str) -> str:
        return f"{FILES_URL_PREFIX}{relative_path}"

    @staticmethod
    def relative_from_url(image_url: str) -> Optional[str]:
        """Inverse of public_url(); None for empty or foreign URLs."""
        if not image_url or not image_url.startswith(FILES_URL_PREFIX):
            return None
        return image_url[len(FILES_URL_PREFIX):]

    async def cleanup_file(self, relative_path: str) -> None:
        """
        Best-effort removal of a stored file.

        Used after a failed insert and when a recipe is deleted. Failures are
        logged, never raised.
        """
        path = (self.storage_root / relative_path).resolve()
        if not path.is_relative_to(self.storage_root):
            logger.warning("Refusing to clean up path outside storage: %s", relative_path)
            return
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", relative_path, str(e))
