"""Fixed-text captioner, the last captioning tier."""

from __future__ import annotations

from src.interfaces.image_embedding_provider import IImageCaptioner

PLACEHOLDER_CAPTION = "(image description unavailable)"


class PlaceholderCaptioner(IImageCaptioner):
    """Returns :data:`PLACEHOLDER_CAPTION` for every image."""

    async def caption(self, image_bytes: bytes) -> str:
        return PLACEHOLDER_CAPTION

    def is_available(self) -> bool:
        return True

    def can_process(self, image_bytes: bytes) -> bool:
        return True

    def get_provider_name(self) -> str:
        return "placeholder"
