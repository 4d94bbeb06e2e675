"""Maps document blocks to keyed :class:`~src.models.rag.Paragraph` records.

The mapper is where structure is preserved.  Two values are threaded through
a document, block by block, as explicit arguments and return values:

* **order** -- every emitted paragraph takes the next integer, so ``order``
  is strictly increasing across the whole pass, including the several
  chunks one long text block may produce.
* **section** -- the text of the most recent heading.  Every following
  non-heading paragraph inherits it until the next heading replaces it.

Paragraph keys combine the document URI, the paragraph id (kind prefix plus
order) and a hash of the paragraph content, so re-mapping an unchanged
document yields exactly the same keys.
"""

from __future__ import annotations

import hashlib

from src.models.blocks import Block, HeadingBlock, ImageBlock, ListBlock, TableBlock, TextBlock
from src.models.rag import (
    BlockKind,
    ImageMetadata,
    ListType,
    MappedBlock,
    Paragraph,
    source_type_for,
)
from src.services.ingestion.chunker import TextChunker, sha256_hex
from src.services.ingestion.text_cleaner import TextCleaner

IMAGE_MARKER = "[image]"

_ID_PREFIXES: dict[BlockKind, str] = {
    BlockKind.TEXT: "txt",
    BlockKind.HEADING: "hdg",
    BlockKind.LIST: "lst",
    BlockKind.TABLE: "tbl",
    BlockKind.IMAGE: "img",
}


def paragraph_key(document_uri: str, paragraph_id: str, content: str) -> str:
    """Return ``sha256(document_uri):paragraph_id:sha256(content)[:8]``."""
    return f"{sha256_hex(document_uri)}:{paragraph_id}:{sha256_hex(content)[:8]}"


class DocumentBlockMapper:
    """Turns one block at a time into paragraphs.

    Pure apart from its collaborators: the same block, URI, start order and
    section always produce the same :class:`MappedBlock`.

    Parameters
    ----------
    cleaner:
        Applied to text, heading, list and caption content.
    chunker:
        Splits cleaned text blocks into embeddable chunks.
    """

    def __init__(self, cleaner: TextCleaner, chunker: TextChunker) -> None:
        self._cleaner = cleaner
        self._chunker = chunker

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def map_block(
        self,
        block: Block,
        document_uri: str,
        start_order: int,
        current_section: str | None,
        image_metadata: ImageMetadata | None = None,
        published_at: str | None = None,
    ) -> MappedBlock:
        """Map *block* to zero or more paragraphs.

        Parameters
        ----------
        block:
            The block to map.
        document_uri:
            URI of the document being ingested.
        start_order:
            Order of the first emitted paragraph.
        current_section:
            Section in force before this block.
        image_metadata:
            Caption, stored path and embedding for image blocks.
        published_at:
            ISO-8601 publication time copied onto every paragraph.

        Returns
        -------
        MappedBlock
            ``next_order == start_order + len(paragraphs)``; ``section`` is
            the heading text for non-blank headings, else *current_section*.
        """
        match block:
            case HeadingBlock():
                return self._map_heading(block, document_uri, start_order, current_section, published_at)
            case TextBlock():
                paragraphs = self._map_text(block, document_uri, start_order, current_section, published_at)
            case ListBlock():
                paragraphs = self._map_list(block, document_uri, start_order, current_section, published_at)
            case TableBlock():
                paragraphs = self._map_table(block, document_uri, start_order, current_section, published_at)
            case ImageBlock():
                paragraphs = self._map_image(
                    block, document_uri, start_order, current_section, image_metadata, published_at
                )
            case _:
                raise TypeError(f"Unsupported block type: {type(block).__name__}")

        return MappedBlock(paragraphs, start_order + len(paragraphs), current_section)

    # ------------------------------------------------------------------
    # Per-kind mapping
    # ------------------------------------------------------------------

    def _map_heading(
        self,
        block: HeadingBlock,
        document_uri: str,
        order: int,
        current_section: str | None,
        published_at: str | None,
    ) -> MappedBlock:
        text = self._cleaner.clean(block.text)
        if not text:
            return MappedBlock([], order, current_section)

        level = min(max(block.level, 1), 6)
        paragraph = self._paragraph(
            document_uri,
            BlockKind.HEADING,
            order,
            text,
            section=text,
            published_at=published_at,
            heading_level=level,
        )
        return MappedBlock([paragraph], order + 1, text)

    def _map_text(
        self,
        block: TextBlock,
        document_uri: str,
        start_order: int,
        section: str | None,
        published_at: str | None,
    ) -> list[Paragraph]:
        cleaned = self._cleaner.clean(block.text)
        paragraphs: list[Paragraph] = []
        for offset, chunk in enumerate(self._chunker.chunk(document_uri, cleaned)):
            paragraphs.append(
                self._paragraph(
                    document_uri,
                    BlockKind.TEXT,
                    start_order + offset,
                    chunk.text,
                    section=section,
                    published_at=published_at,
                )
            )
        return paragraphs

    def _map_list(
        self,
        block: ListBlock,
        document_uri: str,
        order: int,
        section: str | None,
        published_at: str | None,
    ) -> list[Paragraph]:
        items = [item for item in (self._cleaner.clean(i) for i in block.items) if item]
        if not items:
            return []

        if block.ordered:
            lines = [f"{n}. {item}" for n, item in enumerate(items, start=1)]
        else:
            lines = [f"- {item}" for item in items]

        return [
            self._paragraph(
                document_uri,
                BlockKind.LIST,
                order,
                "\n".join(lines),
                section=section,
                published_at=published_at,
                list_type=ListType.ORDERED if block.ordered else ListType.UNORDERED,
            )
        ]

    def _map_table(
        self,
        block: TableBlock,
        document_uri: str,
        order: int,
        section: str | None,
        published_at: str | None,
    ) -> list[Paragraph]:
        rendered = block.rendered.strip()
        if not rendered:
            return []

        caption = self._cleaner.clean(block.caption)
        text = f"{caption}\n{rendered}" if caption else rendered
        return [
            self._paragraph(
                document_uri,
                BlockKind.TABLE,
                order,
                text,
                section=section,
                published_at=published_at,
                content_hash=block.hash or None,
            )
        ]

    def _map_image(
        self,
        block: ImageBlock,
        document_uri: str,
        order: int,
        section: str | None,
        metadata: ImageMetadata | None,
        published_at: str | None,
    ) -> list[Paragraph]:
        if not block.data:
            return []

        if metadata is not None and metadata.caption.strip():
            text = metadata.caption.strip()
        else:
            text = self._cleaner.clean(block.caption or block.description) or IMAGE_MARKER

        return [
            self._paragraph(
                document_uri,
                BlockKind.IMAGE,
                order,
                text,
                section=section,
                published_at=published_at,
                content_hash=hashlib.sha256(block.data).hexdigest(),
                image_uri=metadata.stored_path if metadata else None,
                image_embedding=list(metadata.image_embedding) if metadata else None,
            )
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _paragraph(
        document_uri: str,
        kind: BlockKind,
        order: int,
        text: str,
        *,
        section: str | None,
        published_at: str | None,
        heading_level: int | None = None,
        list_type: ListType | None = None,
        content_hash: str | None = None,
        image_uri: str | None = None,
        image_embedding: list[float] | None = None,
    ) -> Paragraph:
        paragraph_id = f"{_ID_PREFIXES[kind]}_{order}"
        # Image keys hash the bytes; captions may differ between runs.
        key_content = content_hash if kind is BlockKind.IMAGE and content_hash else text
        return Paragraph(
            key=paragraph_key(document_uri, paragraph_id, key_content),
            document_uri=document_uri,
            paragraph_id=paragraph_id,
            text=text,
            order=order,
            section=section,
            source_type=source_type_for(document_uri),
            content_hash=content_hash or sha256_hex(text),
            published_at=published_at,
            block_kind=kind,
            heading_level=heading_level,
            list_type=list_type,
            image_uri=image_uri,
            image_embedding=image_embedding or None,
        )
