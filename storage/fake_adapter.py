"""In-memory image storage for tests.

Records every call (with the calling thread) and can be configured to fail
uploads or deletes.
"""

import threading
from uuid import uuid4

from storage.port import ImageStorage, ImageStorageError


class FakeImageStorage(ImageStorage):
    """Configurable fake image storage."""

    def __init__(self, base_url: str = "https://cdn.test/images") -> None:
        self.base_url = base_url
        self.files: dict[str, bytes] = {}
        self.calls: list[dict] = []
        self.fail_uploads: bool = False
        self.fail_deletes: bool = False

    def configure(self, fail_uploads: bool = False, fail_deletes: bool = False) -> None:
        self.fail_uploads = fail_uploads
        self.fail_deletes = fail_deletes

    def upload(self, content: bytes, content_type: str, filename: str, product_id: int) -> str:
        self.calls.append({
            "method": "upload",
            "content_type": content_type,
            "filename": filename,
            "product_id": product_id,
            "size": len(content),
            "thread": threading.get_ident(),
        })
        if self.fail_uploads:
            raise ImageStorageError("Simulated upload failure")
        url = f"{self.base_url}/products/{product_id}/{uuid4().hex[:12]}-{filename}"
        self.files[url] = content
        return url

    def delete(self, url: str) -> None:
        self.calls.append({"method": "delete", "url": url, "thread": threading.get_ident()})
        if self.fail_deletes:
            raise ImageStorageError("Simulated delete failure")
        self.files.pop(url, None)
