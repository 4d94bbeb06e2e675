"""Image storage providers."""

from src.providers.storage.local_image_storage import LocalImageStorageProvider

__all__ = ["LocalImageStorageProvider"]
