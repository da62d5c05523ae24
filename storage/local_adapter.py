"""Local filesystem image storage.

Files are written to IMAGE_STORAGE_DIR/products/<product_id>/ and exposed
under IMAGE_PUBLIC_BASE_URL (app.py mounts the directory as static files).
"""

import logging
import uuid
from pathlib import Path

from storage.port import ImageStorage, ImageStorageError

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class LocalImageStorage(ImageStorage):
    def __init__(self, root_dir: str, public_base_url: str) -> None:
        self.root_dir = Path(root_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def _relative_key(self, url: str) -> str:
        prefix = f"{self.public_base_url}/"
        if not url.startswith(prefix):
            raise ImageStorageError(f"URL is not served by this storage: {url}")
        key = url[len(prefix):]
        if ".." in Path(key).parts:
            raise ImageStorageError(f"Refusing path traversal in image URL: {url}")
        return key

    def upload(self, content: bytes, content_type: str, filename: str, product_id: int) -> str:
        extension = EXTENSIONS.get(content_type, "bin")
        key = f"products/{product_id}/{uuid.uuid4().hex}.{extension}"
        target = self.root_dir / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise ImageStorageError(f"Failed to store image '{filename}': {e}") from e
        logger.info(f"[Storage] Stored image for product {product_id} at {key} ({len(content)} bytes)")
        return f"{self.public_base_url}/{key}"

    def delete(self, url: str) -> None:
        target = self.root_dir / self._relative_key(url)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise ImageStorageError(f"Failed to delete image {url}: {e}") from e
        logger.info(f"[Storage] Deleted image {url}")
