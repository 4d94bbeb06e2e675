"""Remote embeddings through any OpenAI-compatible ``/embeddings`` endpoint.

Works against OpenAI itself and against compatible hosts (TogetherAI,
Fireworks, a local vLLM) through ``OPENAI_BASE_URL`` plus
``OPENAI_EMBEDDING_MODEL``.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_REQUEST_INPUT_LIMIT = 2048
_DEFAULT_MODEL = "text-embedding-3-small"

_KNOWN_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-large-en-v1.5": 1024,
    "intfloat/multilingual-e5-large-instruct": 1024,
}

# 512-token encoders served behind compatible hosts reject longer input.
_INPUT_CHAR_CAPS: dict[str, int] = {
    "BAAI/bge-large-en-v1.5": 1500,
    "intfloat/multilingual-e5-large-instruct": 1500,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider for an OpenAI-compatible HTTP API.

    Parameters
    ----------
    settings:
        Supplies the key, optional base URL and model.  Models missing from
        the known-dimension table report ``embedding_dimension``.
    """

    def __init__(self, settings: Settings) -> None:
        self._has_key = bool(settings.openai_api_key)
        self._compatible_host = bool(settings.openai_base_url)
        self._client = openai.AsyncOpenAI(
            api_key=settings.openai_api_key or "unset",
            **({"base_url": settings.openai_base_url} if self._compatible_host else {}),
        )
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = _KNOWN_DIMENSIONS.get(self._model, settings.embedding_dimension)
        self._char_cap = _INPUT_CHAR_CAPS.get(self._model)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in request-sized slices, preserving input order."""
        if not texts:
            return []

        inputs = [self._fit(text) for text in texts]
        vectors: list[list[float]] = []
        for start in range(0, len(inputs), _REQUEST_INPUT_LIMIT):
            vectors.extend(await self._request(inputs[start : start + _REQUEST_INPUT_LIMIT]))
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "openai-compatible_embedding" if self._compatible_host else "openai_embedding"

    def is_available(self) -> bool:
        return self._has_key

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request(self, inputs: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=inputs, model=self._model)
        except openai.APIError as exc:
            raise RAGError(
                message=f"Embedding request to {self._model} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(response.data) != len(inputs):
            raise RAGError(
                message=f"Expected {len(inputs)} embeddings, received {len(response.data)}",
                provider_name=self.get_provider_name(),
            )
        logger.debug(
            "embedding_request_complete",
            model=self._model,
            inputs=len(inputs),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in response.data]

    def _fit(self, text: str) -> str:
        """Return *text* cut at a word boundary to the model's input cap."""
        text = text if text.strip() else " "
        if self._char_cap is None or len(text) <= self._char_cap:
            return text
        head = text[: self._char_cap]
        cut = head.rsplit(" ", 1)[0] if " " in head else head
        logger.debug("embedding_input_truncated", model=self._model, chars=len(text), kept=len(cut))
        return cut
