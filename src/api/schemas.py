"""Pydantic request/response schemas for the Groundwire API.

Request schemas end with ``Request``, response schemas with ``Response``.
Domain models (:class:`IngestionResult`, :class:`RetrievalResult`) are
returned as-is inside the response bodies.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from src.models.rag import BlockKind, IngestionResult, ListType, Paragraph, RetrievalResult, SourceType


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


class IngestRequest(BaseModel):
    """Ingest a file, or every supported file under a directory."""

    path: str = Field(..., min_length=1, description="Server-local file or directory path.")
    collection: str | None = Field(
        default=None, description="Target collection; the configured default when omitted."
    )
    published_at: str | None = Field(
        default=None, description="ISO-8601 publication time stamped on every paragraph."
    )


class IngestResponse(BaseModel):
    """Per-file ingestion summaries."""

    collection: str
    results: list[IngestionResult]
    paragraphs_processed: int = 0
    files_failed: int = 0


class RetrieveRequest(BaseModel):
    """A retrieval query.  A blank query returns no results."""

    query: str = Field(..., max_length=2000)
    collection: str | None = None
    top: int | None = Field(default=None, ge=0, le=100)
    web: bool = Field(default=False, description="Blend in web search results.")


class RetrieveResponse(BaseModel):
    """Reranked results for one query."""

    query: str
    collection: str
    results: list[RetrievalResult]
    count: int


class ParagraphResponse(BaseModel):
    """A stored paragraph.  Embeddings are included only on request."""

    key: str
    document_uri: str
    paragraph_id: str
    text: str
    order: int
    section: str | None = None
    source_type: SourceType
    block_kind: BlockKind
    heading_level: int | None = None
    list_type: ListType | None = None
    image_uri: str | None = None
    content_hash: str | None = None
    published_at: str | None = None
    has_image_embedding: bool = False
    text_embedding: list[float] | None = None
    image_embedding: list[float] | None = None

    @classmethod
    def from_paragraph(cls, paragraph: Paragraph, include_embeddings: bool = False) -> ParagraphResponse:
        return cls(
            key=paragraph.key,
            document_uri=paragraph.document_uri,
            paragraph_id=paragraph.paragraph_id,
            text=paragraph.text,
            order=paragraph.order,
            section=paragraph.section,
            source_type=paragraph.source_type,
            block_kind=paragraph.block_kind,
            heading_level=paragraph.heading_level,
            list_type=paragraph.list_type,
            image_uri=paragraph.image_uri,
            content_hash=paragraph.content_hash,
            published_at=paragraph.published_at,
            has_image_embedding=bool(paragraph.image_embedding),
            text_embedding=list(paragraph.text_embedding) if include_embeddings else None,
            image_embedding=(
                list(paragraph.image_embedding)
                if include_embeddings and paragraph.image_embedding
                else None
            ),
        )
