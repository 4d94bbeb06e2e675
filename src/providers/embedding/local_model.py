"""Shared plumbing for in-process embedding models.

fastembed and sentence-transformers differ only in how a model is loaded
and how one batch is encoded.  :class:`LocalModelEmbeddingProvider` owns the
rest: a lock-guarded lazy load, batching, worker-thread execution and the
translation of library failures into :class:`RAGError`.
"""

from __future__ import annotations

import asyncio
import importlib.util
import threading
from abc import abstractmethod
from typing import Any

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

# Stand-in for blank inputs, which some tokenizers encode as NaN rows.
_BLANK_SUBSTITUTE = " "


class LocalModelEmbeddingProvider(IEmbeddingProvider):
    """Base class for embedding models that run inside this process.

    Subclasses set :attr:`library` and :attr:`label` and implement
    :meth:`_create_model` and :meth:`_encode_batch`.
    """

    library: str = ""
    label: str = ""
    batch_limit: int = 64

    def __init__(self, model_name: str, dimension: int) -> None:
        self._model_name = model_name
        self._dimension = dimension
        self._model: Any = None
        self._load_lock = threading.Lock()

    @abstractmethod
    def _create_model(self) -> Any:
        """Instantiate the underlying library model."""

    @abstractmethod
    def _encode_batch(self, batch: list[str]) -> list[list[float]]:
        """Encode one batch with the loaded model."""

    # ------------------------------------------------------------------
    # Loading and encoding (worker thread)
    # ------------------------------------------------------------------

    def _ensure_model(self) -> Any:
        with self._load_lock:
            if self._model is None:
                logger.info("embedding_model_loading", backend=self.label, model=self._model_name)
                try:
                    self._model = self._create_model()
                except Exception as exc:
                    raise RAGError(
                        message=f"Could not load {self.label} model '{self._model_name}': {exc}",
                        provider_name=self.get_provider_name(),
                    ) from exc
                logger.info(
                    "embedding_model_ready",
                    backend=self.label,
                    model=self._model_name,
                    dimension=self._dimension,
                )
            return self._model

    def _encode_all(self, texts: list[str]) -> list[list[float]]:
        self._ensure_model()
        prepared = [text if text.strip() else _BLANK_SUBSTITUTE for text in texts]
        vectors: list[list[float]] = []
        for start in range(0, len(prepared), self.batch_limit):
            vectors.extend(self._encode_batch(prepared[start : start + self.batch_limit]))
        return vectors

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._encode_all, texts)
        except RAGError:
            raise
        except Exception as exc:
            raise RAGError(
                message=f"{self.label} failed to embed {len(texts)} text(s): {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        (vector,) = await self.embed([text])
        return vector

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"{self.label}_{self._model_name.rsplit('/', 1)[-1]}"

    def is_available(self) -> bool:
        return importlib.util.find_spec(self.library) is not None
