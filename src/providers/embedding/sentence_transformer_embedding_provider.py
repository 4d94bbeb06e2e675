"""sentence-transformers text embeddings.

Heavier than fastembed (PyTorch) but uses a GPU when one is present.  The
default, ``intfloat/multilingual-e5-large-instruct``, is 1024-dimensional so
a collection built with the fastembed default keeps its dimension when the
backend is switched.
"""

from __future__ import annotations

from typing import Any

from src.providers.embedding.local_model import LocalModelEmbeddingProvider

_MODEL_DIMENSIONS: dict[str, int] = {
    "intfloat/multilingual-e5-large-instruct": 1024,
    "intfloat/e5-large-v2": 1024,
    "intfloat/e5-base-v2": 768,
    "BAAI/bge-large-en-v1.5": 1024,
    "BAAI/bge-large-zh-v1.5": 1024,
    "BAAI/bge-base-en-v1.5": 768,
}

DEFAULT_MODEL = "intfloat/multilingual-e5-large-instruct"


class SentenceTransformerEmbeddingProvider(LocalModelEmbeddingProvider):
    """Local HuggingFace model; vectors are L2-normalised for cosine search."""

    library = "sentence_transformers"
    label = "sentence_transformer"

    def __init__(self, model_name: str | None = None) -> None:
        name = model_name or DEFAULT_MODEL
        super().__init__(name, _MODEL_DIMENSIONS.get(name, 1024))

    def _create_model(self) -> Any:
        from sentence_transformers import SentenceTransformer

        return SentenceTransformer(self._model_name)

    def _encode_batch(self, batch: list[str]) -> list[list[float]]:
        vectors = self._model.encode(batch, normalize_embeddings=True, show_progress_bar=False)
        return vectors.tolist()
