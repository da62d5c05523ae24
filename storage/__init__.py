"""Image storage factory.

Provides get_storage() / set_storage() to swap implementations:
- LocalImageStorage (files under IMAGE_STORAGE_DIR) by default
- FakeImageStorage for tests
"""

import config
from storage.local_adapter import LocalImageStorage
from storage.port import ImageStorage, ImageStorageError, ImageUpload

_current_storage: ImageStorage | None = None


def get_storage() -> ImageStorage:
    """Return the current image storage. Defaults to LocalImageStorage."""
    global _current_storage
    if _current_storage is None:
        _current_storage = LocalImageStorage(config.IMAGE_STORAGE_DIR, config.IMAGE_PUBLIC_BASE_URL)
    return _current_storage


def set_storage(storage: ImageStorage) -> None:
    """Override the active image storage (useful for tests)."""
    global _current_storage
    _current_storage = storage


def reset_storage() -> None:
    """Reset to default storage."""
    global _current_storage
    _current_storage = None


__all__ = ["ImageStorage", "ImageStorageError", "ImageUpload", "get_storage", "set_storage", "reset_storage"]
