"""Document ingestion pipeline for the groundwire knowledge base.

Orchestrates the pipeline: **read -> clean/chunk -> map -> embed -> store**.

1. **Read** (src/providers/readers/) -- Format-specific readers turn
   Markdown, plain text, PDF and DOCX files into ordered blocks.

2. **Clean / chunk** (text_cleaner.py, chunker.py) -- Strip extraction
   noise and split long text into paragraph-aligned chunks.

3. **Map** (block_mapper.py / DocumentBlockMapper) -- Turn blocks into keyed
   paragraphs, threading order and section through the document.

4. **Embed** (IEmbeddingProvider, image_embedding_service.py) -- Text
   embeddings for every paragraph; caption and image embedding for images.

5. **Store** (IVectorStoreProvider) -- Upsert every paragraph by key.
"""

from src.services.ingestion.block_mapper import DocumentBlockMapper
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.image_embedding_service import ImageEmbeddingService
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_cleaner import TextCleaner

__all__ = [
    "DocumentBlockMapper",
    "ImageEmbeddingService",
    "IngestionService",
    "TextChunker",
    "TextCleaner",
]
