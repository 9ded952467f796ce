"""
QPaperHub Backend — Local Directory Object Store
==================================================

What:  ObjectStore implementation that keeps uploads on the local filesystem.
How:   Writes `<uuid><ext>` files directly under STORAGE_ROOT with aiofiles and
       hands out `{PUBLIC_BASE_URL}/api/files/<object_id>` links, which the
       papers router serves back.
Who:   Selected with OBJECT_STORE_BACKEND=local (development and tests).

Security Model:
    - Object ids are generated server side (UUID + validated extension),
      so no user input ever reaches a path component
    - resolve() rejects ids that would land outside the storage root
"""

import logging
import os
import uuid
from pathlib import Path

import aiofiles

from app.exceptions import NotFoundError, UpstreamServiceError, ValidationError
from app.services.object_store import ObjectStore, StoredObject

logger = logging.getLogger(__name__)


class LocalObjectStore(ObjectStore):
    """Flat directory of uploaded files; every object is public by construction."""

    backend_name = "local"

    def __init__(self, storage_root: str, public_base_url: str):
        self.storage_root = Path(storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")
        logger.info("LocalObjectStore initialized with storage_root=%s", self.storage_root)

    def public_url(self, object_id: str) -> str:
        return f"{self.public_base_url}/api/files/{object_id}"

    def resolve(self, object_id: str) -> Path:
        """
        Map an object id to its file, refusing anything outside storage_root.

        Raises:
            ValidationError: the id escapes the storage root
            NotFoundError: no such object
        """
        full_path = (self.storage_root / object_id).resolve()
        if full_path.parent != self.storage_root:
            raise ValidationError(message="Invalid file path", field="object_id")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=object_id)
        return full_path

    async def store(self, content: bytes, filename: str, mime_type: str) -> StoredObject:
        object_id = f"{uuid.uuid4()}{Path(filename).suffix.lower()}"
        path = self.storage_root / object_id

        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise UpstreamServiceError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("File stored: %s as %s (%d bytes)", filename, object_id, len(content))
        return StoredObject(object_id=object_id, public_url=self.public_url(object_id))

    async def make_public(self, object_id: str) -> None:
        # Served by /api/files, nothing to grant
        return None

    async def delete(self, object_id: str) -> None:
        try:
            path = self.resolve(object_id)
        except NotFoundError:
            logger.debug("Delete: file already gone: %s", object_id)
            return

        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Failed to delete file %s: %s", path, str(e))
            raise UpstreamServiceError(
                message="Failed to delete stored file.",
                context={"path": str(path), "os_error": str(e)},
            )
        logger.info("Deleted file: %s", object_id)

    async def health_check(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)
