"""Abstract base class for paragraph vector stores.

Defines the contract for persisting :class:`~src.models.rag.Paragraph`
records by key and searching them by vector similarity.  Implementations
wrap ChromaDB (persistent, on disk) or a process-local NumPy index used in
tests and one-off CLI runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.rag import Paragraph, RetrievedParagraph

TEXT_EMBEDDING_FIELD = "text_embedding"
IMAGE_EMBEDDING_FIELD = "image_embedding"
VECTOR_FIELDS = (TEXT_EMBEDDING_FIELD, IMAGE_EMBEDDING_FIELD)


# Concrete implementations (src/providers/vector_store/):
#   ChromaDBProvider     -- persistent, cosine distance
#   InMemoryVectorStore  -- NumPy cosine, nothing persisted
class IVectorStoreProvider(ABC):
    """Contract for the paragraph store used by ingestion and retrieval.

    Upserts are keyed by ``Paragraph.key``: writing a paragraph whose key
    already exists replaces the stored record, which is what makes
    re-ingesting an unchanged document idempotent.
    """

    @abstractmethod
    async def ensure_collection_exists(self, name: str) -> None:
        """Create the named collection if it is missing.

        Raises
        ------
        src.utils.errors.RAGError
            If the store is unreachable.
        """

    @abstractmethod
    async def upsert(self, collection: str, paragraph: Paragraph) -> None:
        """Insert or replace *paragraph* under its key.

        Raises
        ------
        src.utils.errors.RAGError
            If the write fails or the embedding dimension does not match
            the store's configuration.
        """

    @abstractmethod
    async def get(self, collection: str, key: str) -> Paragraph | None:
        """Return the paragraph stored under *key*, or ``None``."""

    @abstractmethod
    async def search(
        self,
        collection: str,
        query_vector: list[float],
        top_k: int,
        vector_field: str = TEXT_EMBEDDING_FIELD,
    ) -> list[RetrievedParagraph]:
        """Return up to *top_k* paragraphs nearest to *query_vector*.

        Parameters
        ----------
        collection:
            Collection to search.
        query_vector:
            Query embedding with the store's dimension.
        top_k:
            Maximum number of hits.  ``<= 0`` returns ``[]``.
        vector_field:
            ``"text_embedding"`` or ``"image_embedding"``.

        Returns
        -------
        list[RetrievedParagraph]
            Hits ordered by descending cosine similarity.

        Raises
        ------
        ValueError
            If *vector_field* is not a known field.
        src.utils.errors.RAGError
            If the query fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store can be used."""
