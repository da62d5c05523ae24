"""Image storage port (abstract interface).

Defines the contract every product image storage adapter implements, so the
catalog can move between local disk (default) and an object store without
touching ProductService.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class ImageStorageError(Exception):
    """Raised by adapters when an upload or delete cannot be completed."""


@dataclass(frozen=True)
class ImageUpload:
    """One uploaded file as received by the API."""

    filename: str
    content_type: str
    content: bytes


class ImageStorage(ABC):
    """Abstract product image storage."""

    @abstractmethod
    def upload(self, content: bytes, content_type: str, filename: str, product_id: int) -> str:
        """Store an image and return its public URL."""
        ...

    @abstractmethod
    def delete(self, url: str) -> None:
        """Delete a previously uploaded image by its public URL."""
        ...
