"""Image captioning through an OpenAI-compatible chat-completions endpoint.

``OPENAI_BASE_URL`` points the client at a compatible host (TogetherAI,
Fireworks, vLLM, an Ollama OpenAI endpoint).  Such hosts are only trusted
with images when ``OPENAI_VISION_MODEL`` names a vision model explicitly.
"""

from __future__ import annotations

import base64
from typing import Any

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.utils.errors import LLMError
from src.utils.images import detect_media_type

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_VISION_MODEL = "gpt-4o-mini"
_CALL_TIMEOUT = openai.Timeout(25.0, connect=5.0)
# Captions are short; the captioner trims them further.
_CAPTION_TOKEN_CAP = 120


def _image_message(image_bytes: bytes, prompt: str) -> dict[str, Any]:
    """Build a single user message carrying *prompt* and an inline image."""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    data_uri = f"data:{detect_media_type(image_bytes)};base64,{encoded}"
    return {
        "role": "user",
        "content": [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": data_uri}},
        ],
    }


class OpenAILLMProvider(ILLMProvider):
    """Vision model behind the OpenAI SDK (``gpt-4o-mini`` unless configured)."""

    def __init__(self, settings: Settings) -> None:
        self._has_key = bool(settings.openai_api_key)
        custom_host = bool(settings.openai_base_url)
        self._client = openai.AsyncOpenAI(
            api_key=settings.openai_api_key or "unset",
            timeout=_CALL_TIMEOUT,
            **({"base_url": settings.openai_base_url} if custom_host else {}),
        )
        self._model = settings.openai_vision_model or _DEFAULT_VISION_MODEL
        self._vision = bool(settings.openai_vision_model) or not custom_host
        self._name = "openai-compatible" if custom_host else "openai"

    async def vision_extract(self, image_bytes: bytes, prompt: str) -> str:
        if not self._vision:
            raise LLMError(
                message="No vision model configured for this endpoint",
                provider_name=self._name,
            )

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[_image_message(image_bytes, prompt)],
                max_tokens=_CAPTION_TOKEN_CAP,
                temperature=0.0,
            )
        except openai.APIError as exc:
            # APITimeoutError is a subclass; the message says which one it was
            raise LLMError(
                message=f"{type(exc).__name__} from {self._model}: {exc}",
                provider_name=self._name,
            ) from exc

        text = response.choices[0].message.content if response.choices else None
        if text is None:
            raise LLMError(message=f"{self._model} returned no content", provider_name=self._name)

        logger.debug(
            "vision_caption_received",
            model=self._model,
            chars=len(text),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return text

    def supports_vision(self) -> bool:
        return self._vision

    def is_available(self) -> bool:
        return self._has_key

    def get_provider_name(self) -> str:
        return self._name
