"""Embedding provider implementations.

Three implementations of IEmbeddingProvider, selected by EMBEDDING_BACKEND:
    1. FastEmbedEmbeddingProvider           ("fastembed", default) ONNX only.
    2. SentenceTransformerEmbeddingProvider ("sentence_transformers") PyTorch.
    3. OpenAIEmbeddingProvider              ("openai") remote, needs a key.

The two local providers import their model libraries lazily, so importing
this package does not load PyTorch or ONNX Runtime.
"""

from src.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)

__all__ = [
    "FastEmbedEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
]
