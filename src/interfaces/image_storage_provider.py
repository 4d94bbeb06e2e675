"""Abstract base class for image byte storage."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalImageStorageProvider (src/providers/storage/)
class IImageStorageProvider(ABC):
    """Persists extracted image bytes so image paragraphs can link to them."""

    @abstractmethod
    async def save(self, image_bytes: bytes, name: str) -> str:
        """Store *image_bytes* and return the stored path.

        Parameters
        ----------
        image_bytes:
            Raw image bytes.
        name:
            Suggested base name; implementations may add a content-derived
            suffix and an extension.

        Returns
        -------
        str
            Path relative to the storage root.

        Raises
        ------
        OSError
            If the bytes cannot be written.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local"``."""
