"""PDF block reader built on PyMuPDF (fitz).

Walks the document page by page.  Each text block PyMuPDF reports becomes a
:class:`TextBlock`, except single-line blocks that look like chapter or part
headings, which become :class:`HeadingBlock`.  Embedded raster images are
extracted after the page's text.  Scanned PDFs without a text layer yield
only image blocks.
"""

from __future__ import annotations

import re
from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from src.interfaces.block_reader import IBlockReader
from src.models.blocks import Block, HeadingBlock, ImageBlock, TextBlock
from src.utils.errors import DocumentReadError

logger = structlog.get_logger(logger_name=__name__)

_HEADING_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^Chapter\s+\d+", re.IGNORECASE),
    re.compile(r"^PART\s+[IVXLCDM\d]+", re.IGNORECASE),
    re.compile(r"^第[一二三四五六七八九十百\d]+[章节部]"),
    re.compile(r"^[A-Z][A-Z\s]{4,}$"),
]
_MAX_HEADING_CHARS = 80
_TEXT_BLOCK = 0


def looks_like_heading(text: str) -> bool:
    """Return ``True`` for a short single line matching a heading pattern."""
    stripped = text.strip()
    if not stripped or "\n" in stripped or len(stripped) > _MAX_HEADING_CHARS:
        return False
    return any(p.match(stripped) for p in _HEADING_PATTERNS)


class PdfBlockReader(IBlockReader):
    """Reads ``.pdf`` files with PyMuPDF."""

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".pdf",)

    def read_blocks(self, path: str | Path) -> list[Block]:
        file_path = str(path)
        try:
            doc = fitz.open(file_path)
        except Exception as exc:
            raise DocumentReadError(
                message=f"Cannot open PDF {file_path}: {exc}",
                provider_name="pdf-reader",
            ) from exc

        blocks: list[Block] = []
        try:
            if doc.needs_pass:
                raise DocumentReadError(
                    message=f"PDF {file_path} is encrypted",
                    provider_name="pdf-reader",
                )
            for page_index in range(len(doc)):
                page = doc[page_index]
                self._read_text(page, blocks)
                self._read_images(doc, page, page_index, blocks)
        except DocumentReadError:
            raise
        except Exception as exc:
            raise DocumentReadError(
                message=f"Corrupt PDF {file_path}: {exc}",
                provider_name="pdf-reader",
            ) from exc
        finally:
            doc.close()

        logger.debug("pdf_blocks_read", file_path=file_path, blocks=len(blocks))
        return blocks

    @staticmethod
    def _read_text(page, blocks: list[Block]) -> None:
        # (x0, y0, x1, y1, text, block_no, block_type); sort=True gives reading order
        for raw in page.get_text("blocks", sort=True):
            if raw[6] != _TEXT_BLOCK:
                continue
            text = raw[4].strip()
            if not text:
                continue
            if looks_like_heading(text):
                blocks.append(HeadingBlock(text=text, level=1, order=len(blocks)))
            else:
                blocks.append(TextBlock(text=text, order=len(blocks)))

    @staticmethod
    def _read_images(doc, page, page_index: int, blocks: list[Block]) -> None:
        for image_info in page.get_images(full=True):
            xref = image_info[0]
            extracted = doc.extract_image(xref)
            data = extracted.get("image") if extracted else None
            if not data:
                continue
            blocks.append(
                ImageBlock(
                    data=data,
                    source_path=f"page{page_index + 1}-xref{xref}.{extracted.get('ext', 'png')}",
                    order=len(blocks),
                )
            )
