"""Tiered image embedding and captioning.

Every image paragraph needs two things: a vector for the image field and a
short text for the text field.  Each comes from an ordered list of tiers
(primary first, fallback last).  For every call the service asks each tier
whether it is available and whether it can handle these bytes, and uses the
first that says yes.  A missing or unloadable CLIP model, or an undecodable image, therefore
takes the fallback tier through a probe, never through an exception on the
primary path.

An embedding tier that fails at inference hands over to the next tier.
A vision caption call that fails in transport (:class:`LLMError`) degrades
to the placeholder caption with a warning.  Cancellation propagates.
"""

from __future__ import annotations

import structlog

from src.interfaces.image_embedding_provider import IImageCaptioner, IImageEmbeddingProvider
from src.providers.image.placeholder_captioner import PLACEHOLDER_CAPTION
from src.utils.errors import LLMError, ProviderUnavailableError, RAGError

logger = structlog.get_logger(logger_name=__name__)


class ImageEmbeddingService:
    """Selects an embedding tier and a caption tier per image.

    Parameters
    ----------
    embedders:
        Embedding tiers in priority order.  The last one should accept any
        bytes (the hash tier does).
    captioners:
        Caption tiers in priority order.  The last one should accept any
        bytes (the placeholder tier does).
    """

    def __init__(
        self,
        embedders: list[IImageEmbeddingProvider],
        captioners: list[IImageCaptioner],
    ) -> None:
        if not embedders:
            raise ValueError("At least one image embedding tier is required")
        if not captioners:
            raise ValueError("At least one image caption tier is required")
        self._embedders = list(embedders)
        self._captioners = list(captioners)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_embedding(self, image_bytes: bytes) -> list[float]:
        """Embed *image_bytes* with the first tier that accepts and succeeds.

        A tier that raises :class:`RAGError` is logged and the next accepting
        tier is tried.

        Raises
        ------
        ProviderUnavailableError
            If no tier accepts the bytes or every accepting tier failed.
        """
        for embedder in self._embedders:
            if not (embedder.is_available() and embedder.can_process(image_bytes)):
                continue
            logger.debug("image_embedding_tier_selected", provider=embedder.get_provider_name())
            try:
                return await embedder.embed(image_bytes)
            except RAGError as exc:
                logger.warning(
                    "image_embedding_tier_failed",
                    provider=embedder.get_provider_name(),
                    error=exc.message,
                )
        raise ProviderUnavailableError(message="No image embedding tier can process this image")

    async def generate_caption(self, image_bytes: bytes) -> str:
        """Caption *image_bytes*, degrading to the placeholder on model failure."""
        captioner = self._select(self._captioners, image_bytes)
        if captioner is None:
            return PLACEHOLDER_CAPTION

        try:
            caption = await captioner.caption(image_bytes)
        except LLMError as exc:
            logger.warning(
                "image_caption_failed",
                provider=captioner.get_provider_name(),
                error=str(exc),
            )
            return PLACEHOLDER_CAPTION

        return caption.strip() or PLACEHOLDER_CAPTION

    def get_dimension(self) -> int:
        return self._embedders[0].get_dimension()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _select(tiers, image_bytes: bytes):  # noqa: ANN001, ANN205
        for tier in tiers:
            if tier.is_available() and tier.can_process(image_bytes):
                return tier
        return None
