"""Vector store provider implementations.

ChromaDBProvider is the persistent store: paragraphs live on disk at
CHROMADB_PERSIST_DIR (default: ./data/chromadb) and are searched by cosine
similarity.  InMemoryVectorStore keeps everything in process memory and is
meant for tests and throwaway API runs.
"""

from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.providers.vector_store.memory_provider import InMemoryVectorStore

__all__ = ["ChromaDBProvider", "InMemoryVectorStore"]
