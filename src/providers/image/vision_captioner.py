"""Image captioning through a vision-capable LLM.

Primary captioning tier.  The caption becomes the searchable text of an
image paragraph, so the prompt asks for a short objective description and
the answer is cut to :data:`MAX_CAPTION_CHARS`.
"""

from __future__ import annotations

import structlog

from src.interfaces.image_embedding_provider import IImageCaptioner
from src.interfaces.llm_provider import ILLMProvider
from src.utils.images import is_decodable_image

logger = structlog.get_logger(logger_name=__name__)

MAX_CAPTION_CHARS = 60

CAPTION_PROMPT = (
    "Describe the content of this image objectively in no more than 20 words. "
    "Do not start with phrases like 'This image' or 'The photo'. "
    "If the image contains a chart or table, name what it measures."
)


class VisionLLMCaptioner(IImageCaptioner):
    """Captions images with an injected :class:`ILLMProvider`.

    Parameters
    ----------
    llm:
        Provider whose :meth:`~ILLMProvider.vision_extract` is called.
    prompt:
        Instruction sent with every image.
    """

    def __init__(self, llm: ILLMProvider, prompt: str = CAPTION_PROMPT) -> None:
        self._llm = llm
        self._prompt = prompt

    async def caption(self, image_bytes: bytes) -> str:
        """Return the model's description, trimmed to 60 characters.

        Raises
        ------
        src.utils.errors.LLMError
            Propagated from the provider on transport or API failure.
        """
        text = (await self._llm.vision_extract(image_bytes, self._prompt)).strip()
        if len(text) > MAX_CAPTION_CHARS:
            text = text[:MAX_CAPTION_CHARS].rstrip()
        logger.debug("image_captioned", provider=self._llm.get_provider_name(), chars=len(text))
        return text

    def is_available(self) -> bool:
        return self._llm.is_available() and self._llm.supports_vision()

    def can_process(self, image_bytes: bytes) -> bool:
        return is_decodable_image(image_bytes)

    def get_provider_name(self) -> str:
        return f"vision-{self._llm.get_provider_name()}"
