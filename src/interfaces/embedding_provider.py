"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap FastEmbed (local ONNX), Sentence Transformers, or an
OpenAI-compatible embeddings endpoint.  Ingestion embeds every paragraph
through this contract; retrieval embeds each query variant through it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (src/providers/embedding/):
#   FastEmbedEmbeddingProvider           -- ONNX, no PyTorch, the default
#   SentenceTransformerEmbeddingProvider -- local, needs PyTorch
#   OpenAIEmbeddingProvider              -- any OpenAI-compatible endpoint
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services.

    Vectors produced here are stored in the ``text_embedding`` field of
    :class:`~src.models.rag.Paragraph` and compared against query vectors by
    :class:`~src.interfaces.vector_store_provider.IVectorStoreProvider`.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations batch
            internally if the backend has a per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*, each of
            length :meth:`get_dimension`.

        Raises
        ------
        src.utils.errors.RAGError
            If the embedding call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Raises
        ------
        src.utils.errors.RAGError
            If the embedding call fails.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Constant for the provider's lifetime; must match the dimension the
        vector store was configured with.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"fastembed"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider can embed without a network probe."""
