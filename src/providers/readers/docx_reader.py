"""DOCX block reader built on python-docx.

Walks the document body in order so paragraphs and tables interleave as
they appear in Word:

* paragraphs styled ``Title`` / ``Heading N`` -> :class:`HeadingBlock`
* consecutive ``List Bullet*`` / ``List Number*`` / ``List Paragraph``
  paragraphs -> one :class:`ListBlock`
* tables -> :class:`TableBlock` (a preceding ``Caption`` paragraph becomes
  the table caption)
* inline pictures -> :class:`ImageBlock`, with the picture's alt text
  (``wp:docPr/@descr``) as description
* all other non-empty paragraphs -> :class:`TextBlock`
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog
from docx import Document
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph as DocxParagraph

from src.interfaces.block_reader import IBlockReader
from src.models.blocks import Block, HeadingBlock, ImageBlock, ListBlock, TableBlock, TextBlock
from src.utils.errors import DocumentReadError

logger = structlog.get_logger(logger_name=__name__)

_HEADING_STYLE = re.compile(r"^Heading\s+(\d)$", re.IGNORECASE)


def _style_name(paragraph: DocxParagraph) -> str:
    style = paragraph.style
    return style.name if style is not None and style.name else ""


class DocxBlockReader(IBlockReader):
    """Reads ``.docx`` files with python-docx."""

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".docx",)

    def read_blocks(self, path: str | Path) -> list[Block]:
        file_path = str(path)
        try:
            document = Document(file_path)
            blocks = _DocxWalker(document).walk()
        except Exception as exc:
            raise DocumentReadError(
                message=f"Cannot read DOCX {file_path}: {exc}",
                provider_name="docx-reader",
            ) from exc

        logger.debug("docx_blocks_read", file_path=file_path, blocks=len(blocks))
        return blocks


class _DocxWalker:
    def __init__(self, document) -> None:
        self._document = document
        self._blocks: list[Block] = []
        self._list_items: list[str] = []
        self._list_ordered = False
        self._pending_caption: str | None = None

    def walk(self) -> list[Block]:
        body = self._document.element.body
        for child in body.iterchildren():
            if child.tag == qn("w:p"):
                self._paragraph(DocxParagraph(child, self._document))
            elif child.tag == qn("w:tbl"):
                self._table(Table(child, self._document))
        self._flush_list()
        self._flush_caption()
        return self._blocks

    @property
    def _next_order(self) -> int:
        return len(self._blocks)

    def _paragraph(self, paragraph: DocxParagraph) -> None:
        style = _style_name(paragraph)
        text = paragraph.text.strip()

        if style.startswith(("List Bullet", "List Number", "List Paragraph")) and text:
            ordered = style.startswith("List Number")
            if self._list_items and ordered != self._list_ordered:
                self._flush_list()
            self._flush_caption()
            self._list_ordered = ordered
            self._list_items.append(text)
            self._images(paragraph)
            return

        self._flush_list()

        if style == "Caption" and text:
            self._flush_caption()
            self._pending_caption = text
            return
        self._flush_caption()

        heading = _HEADING_STYLE.match(style)
        if text and (heading or style == "Title"):
            level = int(heading.group(1)) if heading else 1
            self._blocks.append(HeadingBlock(text=text, level=level, order=self._next_order))
        elif text:
            self._blocks.append(TextBlock(text=text, order=self._next_order))
        self._images(paragraph)

    def _table(self, table: Table) -> None:
        self._flush_list()
        rows = [[cell.text.strip() for cell in row.cells] for row in table.rows]
        if any(any(cell for cell in row) for row in rows):
            self._blocks.append(
                TableBlock.from_rows(rows, order=self._next_order, caption=self._pending_caption)
            )
        self._pending_caption = None

    def _images(self, paragraph: DocxParagraph) -> None:
        element = paragraph._element
        descriptions = [d.get("descr") or d.get("title") for d in element.iter(qn("wp:docPr"))]
        related = self._document.part.related_parts
        for index, blip in enumerate(element.iter(qn("a:blip"))):
            rel_id = blip.get(qn("r:embed"))
            part = related.get(rel_id) if rel_id else None
            if part is None:
                continue
            description = descriptions[index] if index < len(descriptions) else None
            self._blocks.append(
                ImageBlock(
                    data=part.blob,
                    description=description or None,
                    source_path=str(part.partname),
                    order=self._next_order,
                )
            )

    def _flush_list(self) -> None:
        if self._list_items:
            self._blocks.append(
                ListBlock(
                    items=tuple(self._list_items),
                    ordered=self._list_ordered,
                    order=self._next_order,
                )
            )
            self._list_items = []

    def _flush_caption(self) -> None:
        # A caption not followed by a table is ordinary text.
        if self._pending_caption:
            self._blocks.append(TextBlock(text=self._pending_caption, order=self._next_order))
            self._pending_caption = None
