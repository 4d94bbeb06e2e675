"""Public interface definitions for every pluggable groundwire component.

Business logic (ingestion, retrieval) talks only to the abstract base
classes in this package; concrete adapters live in ``src/providers/`` and
are wired together by ``src/components.py`` for both ``src/main.py``
(HTTP) and ``src/cli/knowledge_base.py`` (command line).  Tests inject
fakes through the same contracts.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IBlockReader               →  MarkdownBlockReader, PlainTextBlockReader,
                                  PdfBlockReader, DocxBlockReader
    IEmbeddingProvider         →  FastEmbedEmbeddingProvider,
                                  SentenceTransformerEmbeddingProvider,
                                  OpenAIEmbeddingProvider
    IVectorStoreProvider       →  ChromaDBProvider, InMemoryVectorStore
    IWebSearchProvider         →  DuckDuckGoSearchProvider
    ILLMProvider               →  OpenAILLMProvider
    IImageEmbeddingProvider    →  OnnxClipImageEmbeddingProvider,
                                  HashImageEmbeddingProvider
    IImageCaptioner            →  VisionLLMCaptioner, PlaceholderCaptioner
    IImageStorageProvider      →  LocalImageStorageProvider
"""

from src.interfaces.block_reader import IBlockReader
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.image_embedding_provider import IImageCaptioner, IImageEmbeddingProvider
from src.interfaces.image_storage_provider import IImageStorageProvider
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.interfaces.web_search_provider import IWebSearchProvider, SearchResult

__all__ = [
    "IBlockReader",
    "IEmbeddingProvider",
    "IImageCaptioner",
    "IImageEmbeddingProvider",
    "IImageStorageProvider",
    "ILLMProvider",
    "IVectorStoreProvider",
    "IWebSearchProvider",
    "SearchResult",
]
