"""groundwire domain models -- re-exports all public model classes.

    - blocks.py -- reader-side document blocks (tagged union)
    - rag.py    -- paragraphs, retrieval candidates and ingestion summaries
"""

from __future__ import annotations

from src.models.blocks import (
    Block,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    TableBlock,
    TextBlock,
)
from src.models.rag import (
    BlockKind,
    ChunkRecord,
    ImageMetadata,
    IngestionResult,
    ListType,
    MappedBlock,
    Paragraph,
    RetrievalResult,
    RetrievedParagraph,
    SourceType,
    source_type_for,
)

__all__ = [
    "Block",
    "BlockKind",
    "ChunkRecord",
    "HeadingBlock",
    "ImageBlock",
    "ImageMetadata",
    "IngestionResult",
    "ListBlock",
    "ListType",
    "MappedBlock",
    "Paragraph",
    "RetrievalResult",
    "RetrievedParagraph",
    "SourceType",
    "TableBlock",
    "TextBlock",
    "source_type_for",
]
