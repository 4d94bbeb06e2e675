"""Image embedding and captioning tiers.

Embedding:  OnnxClipImageEmbeddingProvider -> HashImageEmbeddingProvider
Captioning: VisionLLMCaptioner             -> PlaceholderCaptioner

ImageEmbeddingService walks each list in order and uses the first tier
whose ``is_available()`` and ``can_process(bytes)`` both return ``True``.
"""

from src.providers.image.hash_provider import HashImageEmbeddingProvider
from src.providers.image.onnx_clip_provider import OnnxClipImageEmbeddingProvider
from src.providers.image.placeholder_captioner import PLACEHOLDER_CAPTION, PlaceholderCaptioner
from src.providers.image.vision_captioner import VisionLLMCaptioner

__all__ = [
    "HashImageEmbeddingProvider",
    "OnnxClipImageEmbeddingProvider",
    "PLACEHOLDER_CAPTION",
    "PlaceholderCaptioner",
    "VisionLLMCaptioner",
]
