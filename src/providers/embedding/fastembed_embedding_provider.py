"""fastembed text embeddings (ONNX Runtime, no PyTorch).

Default model: ``intfloat/multilingual-e5-large`` (1024 dimensions), which
handles the mixed Chinese/English corpora the rewriter vocabulary targets.
Weights are downloaded on first use and cached by fastembed.
"""

from __future__ import annotations

from typing import Any

from src.providers.embedding.local_model import LocalModelEmbeddingProvider

_MODEL_DIMENSIONS: dict[str, int] = {
    "intfloat/multilingual-e5-large": 1024,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-small-zh-v1.5": 512,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
}

DEFAULT_MODEL = "intfloat/multilingual-e5-large"


class FastEmbedEmbeddingProvider(LocalModelEmbeddingProvider):
    """CPU embedding via ``fastembed.TextEmbedding``; the default backend."""

    library = "fastembed"
    label = "fastembed"

    def __init__(self, model_name: str | None = None) -> None:
        name = model_name or DEFAULT_MODEL
        super().__init__(name, _MODEL_DIMENSIONS.get(name, 1024))

    def _create_model(self) -> Any:
        from fastembed import TextEmbedding

        return TextEmbedding(model_name=self._model_name)

    def _encode_batch(self, batch: list[str]) -> list[list[float]]:
        # TextEmbedding.embed is a generator of numpy rows
        return [row.tolist() for row in self._model.embed(batch)]
