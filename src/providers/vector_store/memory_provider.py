"""In-process vector store backed by NumPy.

Nothing is persisted.  Used by the test suite and by API runs configured
with ``VECTOR_STORE_BACKEND=memory``.
"""

from __future__ import annotations

import numpy as np
import structlog

from src.interfaces.vector_store_provider import (
    IMAGE_EMBEDDING_FIELD,
    TEXT_EMBEDDING_FIELD,
    VECTOR_FIELDS,
    IVectorStoreProvider,
)
from src.models.rag import Paragraph, RetrievedParagraph
from src.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)


class InMemoryVectorStore(IVectorStoreProvider):
    """Dict-of-dicts paragraph store with brute-force cosine search.

    Parameters
    ----------
    expected_dimension:
        When set, vectors of any other length are rejected like
        :class:`~src.providers.vector_store.chromadb_provider.ChromaDBProvider`
        does.
    """

    def __init__(self, expected_dimension: int | None = None) -> None:
        self._expected_dimension = expected_dimension
        self._collections: dict[str, dict[str, Paragraph]] = {}

    async def ensure_collection_exists(self, name: str) -> None:
        self._collections.setdefault(name, {})

    async def upsert(self, collection: str, paragraph: Paragraph) -> None:
        self._check_dimension(paragraph.text_embedding, TEXT_EMBEDDING_FIELD)
        if paragraph.image_embedding:
            self._check_dimension(paragraph.image_embedding, IMAGE_EMBEDDING_FIELD)
        self._collections.setdefault(collection, {})[paragraph.key] = paragraph

    async def get(self, collection: str, key: str) -> Paragraph | None:
        return self._collections.get(collection, {}).get(key)

    async def search(
        self,
        collection: str,
        query_vector: list[float],
        top_k: int,
        vector_field: str = TEXT_EMBEDDING_FIELD,
    ) -> list[RetrievedParagraph]:
        if vector_field not in VECTOR_FIELDS:
            raise ValueError(f"Unknown vector field: {vector_field}")
        if top_k <= 0:
            return []

        candidates = [
            p for p in self._collections.get(collection, {}).values()
            if getattr(p, vector_field)
        ]
        if not candidates:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        matrix = np.asarray([getattr(p, vector_field) for p in candidates], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)

        # Stable on ties: insertion order breaks them.
        ranked = sorted(range(len(candidates)), key=lambda i: -scores[i])[:top_k]
        return [
            RetrievedParagraph(paragraph=candidates[i], score=float(scores[i])) for i in ranked
        ]

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True

    def _check_dimension(self, vector: list[float] | None, field: str) -> None:
        if self._expected_dimension is None:
            if not vector:
                raise RAGError(message=f"{field} is empty", provider_name=self.get_provider_name())
            return
        size = len(vector) if vector is not None else 0
        if size != self._expected_dimension:
            raise RAGError(
                message=f"{field} has dimension {size}, store expects {self._expected_dimension}",
                provider_name=self.get_provider_name(),
            )
