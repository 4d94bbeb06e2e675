"""Abstract base classes for the image embedding and captioning tiers.

Each concern has a primary and a fallback implementation.  The
:class:`~src.services.ingestion.image_embedding_service.ImageEmbeddingService`
asks each tier whether it can handle a given image (:meth:`is_available`
plus :meth:`can_process`) and uses the first one that says yes, so a missing
model file or an undecodable image routes to the fallback without an
exception ever being raised on the primary path.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (src/providers/image/):
#   OnnxClipImageEmbeddingProvider -- CLIP image encoder via onnxruntime
#   HashImageEmbeddingProvider     -- deterministic SHA-256 expansion
class IImageEmbeddingProvider(ABC):
    """Contract for producing a fixed-dimension vector from image bytes."""

    @abstractmethod
    async def embed(self, image_bytes: bytes) -> list[float]:
        """Return an L2-normalised vector of length :meth:`get_dimension`."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the output vector length."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the tier is usable at all (model present etc.)."""

    @abstractmethod
    def can_process(self, image_bytes: bytes) -> bool:
        """Return ``True`` if this tier can embed these particular bytes."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"onnx-clip"``."""


# Concrete implementations (src/providers/image/):
#   VisionLLMCaptioner  -- vision-capable ILLMProvider
#   PlaceholderCaptioner -- fixed placeholder text
class IImageCaptioner(ABC):
    """Contract for producing a short text description of an image."""

    @abstractmethod
    async def caption(self, image_bytes: bytes) -> str:
        """Return a short caption for the image.

        Raises
        ------
        src.utils.errors.LLMError
            If a model-backed captioner's call fails.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the tier is configured."""

    @abstractmethod
    def can_process(self, image_bytes: bytes) -> bool:
        """Return ``True`` if this tier can caption these particular bytes."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier."""
