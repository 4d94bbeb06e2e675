"""Knowledge-base data models for groundwire.

Defines Pydantic v2 models for paragraphs (the persisted retrieval unit),
chunker output, image metadata, vector-store hits, fused retrieval
candidates and ingestion summaries.  All models are frozen.

Flow overview:

    1. READING: a block reader turns a file into ordered blocks
       (:mod:`src.models.blocks`).
    2. MAPPING: the block mapper cleans/chunks each block into
       :class:`Paragraph` records with stable keys, order and section.
    3. EMBEDDING + STORAGE: each paragraph gets a text embedding (and image
       paragraphs an image embedding) and is upserted by key.
    4. RETRIEVAL: vector hits come back as :class:`RetrievedParagraph`, are
       fused with web hits as :class:`RetrievalResult` and reranked.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------
class BlockKind(IntEnum):
    """Which kind of block a paragraph was produced from."""

    TEXT = 0
    HEADING = 1
    LIST = 2
    TABLE = 3
    IMAGE = 4


class ListType(IntEnum):
    UNORDERED = 0
    ORDERED = 1


class SourceType(str, Enum):
    """Document family, derived from the document URI."""

    PDF = "pdf"
    DOCX = "docx"
    MARKDOWN = "markdown"
    TEXT = "text"
    WEB = "web"
    UNKNOWN = "unknown"


_EXTENSION_SOURCE_TYPES: dict[str, SourceType] = {
    ".pdf": SourceType.PDF,
    ".docx": SourceType.DOCX,
    ".md": SourceType.MARKDOWN,
    ".markdown": SourceType.MARKDOWN,
    ".txt": SourceType.TEXT,
}


def source_type_for(document_uri: str) -> SourceType:
    """Classify *document_uri* by scheme or file extension."""
    lowered = (document_uri or "").strip().lower()
    if lowered.startswith(("http://", "https://")):
        return SourceType.WEB
    for extension, source_type in _EXTENSION_SOURCE_TYPES.items():
        if lowered.endswith(extension):
            return source_type
    return SourceType.UNKNOWN


# ---------------------------------------------------------------------------
# ChunkRecord -- chunker output.
# ---------------------------------------------------------------------------
class ChunkRecord(BaseModel):
    """One chunk of cleaned text with its deterministic key."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="sha256(document_uri):index:sha256(text)[:8].")
    document_uri: str = Field(description="URI of the document the chunk came from.")
    text: str = Field(description="Chunk text.")


# ---------------------------------------------------------------------------
# ImageMetadata -- precomputed per image block before mapping.
# ---------------------------------------------------------------------------
class ImageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    caption: str = Field(description="Caption used as the image paragraph's text.")
    stored_path: str | None = Field(
        default=None, description="Relative path of the persisted image bytes, if saved."
    )
    image_embedding: list[float] = Field(
        default_factory=list, description="Image embedding vector."
    )


# ---------------------------------------------------------------------------
# Paragraph -- the persisted retrieval unit.
# ---------------------------------------------------------------------------
class Paragraph(BaseModel):
    """A keyed, embeddable slice of a document.

    ``key`` is stable across re-ingestion of an unchanged document, so an
    upsert by key replaces the previous record instead of duplicating it.
    ``order`` is strictly increasing within one ingestion pass and
    ``section`` is the text of the most recent heading.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Stable idempotency key.")
    document_uri: str = Field(description="URI of the source document.")
    paragraph_id: str = Field(
        description="Kind-prefixed id: txt_, hdg_, lst_, tbl_ or img_ followed by the order."
    )
    text: str = Field(description="Paragraph text (the caption for image paragraphs).")
    text_embedding: list[float] = Field(
        default_factory=list, description="Text embedding; empty until embedded."
    )
    image_uri: str | None = Field(default=None, description="Stored image path.")
    image_embedding: list[float] | None = Field(
        default=None, description="Image embedding for image paragraphs."
    )
    order: int = Field(ge=0, description="Position within the ingestion pass.")
    section: str | None = Field(default=None, description="Text of the governing heading.")
    source_type: SourceType = Field(default=SourceType.UNKNOWN)
    content_hash: str | None = Field(
        default=None, description="Change-detection hash; not part of identity."
    )
    published_at: str | None = Field(default=None, description="ISO-8601 publication time.")
    block_kind: BlockKind = Field(default=BlockKind.TEXT)
    heading_level: int | None = Field(default=None, ge=1, le=6)
    list_type: ListType | None = Field(default=None)


# ---------------------------------------------------------------------------
# RetrievedParagraph -- a vector-store hit.
# ---------------------------------------------------------------------------
class RetrievedParagraph(BaseModel):
    model_config = ConfigDict(frozen=True)

    paragraph: Paragraph = Field(description="The stored paragraph.")
    score: float = Field(default=0.0, description="Cosine similarity to the query vector.")


# ---------------------------------------------------------------------------
# RetrievalResult -- a fused candidate handed to the reranker.
# ---------------------------------------------------------------------------
class RetrievalResult(BaseModel):
    """A retrieval candidate from either the knowledge base or the web.

    Knowledge-base hits use ``name=paragraph_id``, ``value=text`` and
    ``link=document_uri``; web hits use the search result's title, snippet
    and URL.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Title or paragraph id.")
    value: str = Field(default="", description="Snippet or paragraph text.")
    link: str = Field(default="", description="URL or document URI.")
    source: str = Field(
        default="knowledge_base", description='Origin: "knowledge_base" or "web".'
    )

    @property
    def dedupe_key(self) -> str:
        return f"{self.link}|{self.name}|{self.value}"


# ---------------------------------------------------------------------------
# IngestionResult -- per-file summary.
# ---------------------------------------------------------------------------
class IngestionResult(BaseModel):
    """Summary of one file's ingestion.

    ``error`` is only set by directory ingestion, which reports a file that
    failed fatally instead of aborting the walk.
    """

    model_config = ConfigDict(frozen=True)

    document_uri: str = Field(description="URI of the ingested document.")
    source_type: SourceType = Field(default=SourceType.UNKNOWN)
    blocks_read: int = Field(default=0, ge=0)
    paragraphs_processed: int = Field(
        default=0, ge=0, description="Paragraphs embedded and upserted."
    )
    paragraphs_skipped: int = Field(
        default=0, ge=0, description="Paragraphs whose embedding or upsert failed."
    )
    duplicate_images: int = Field(default=0, ge=0)
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")
    error: str | None = Field(default=None)


class MappedBlock(NamedTuple):
    """Mapper output: the paragraphs plus the threaded order and section."""

    paragraphs: list[Paragraph]
    next_order: int
    section: str | None
