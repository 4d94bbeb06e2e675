"""Markdown block reader.

Recognises the subset of CommonMark/GFM that carries document structure:

* ATX headings (``#`` to ``######``) -> :class:`HeadingBlock`
* bullet (``-``, ``*``, ``+``) and numbered (``1.``, ``1)``) lists
  -> :class:`ListBlock`
* pipe tables with a ``---`` separator row -> :class:`TableBlock`
* images ``![alt](path)`` on their own line -> :class:`ImageBlock`, with the
  bytes loaded from a path relative to the markdown file
* fenced code blocks are kept verbatim as text
* everything else -> :class:`TextBlock`, one per blank-line paragraph

A line ``Table: ...`` or ``*Table ...*`` directly above a table becomes the
table caption.
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from src.interfaces.block_reader import IBlockReader
from src.models.blocks import Block, HeadingBlock, ImageBlock, ListBlock, TableBlock, TextBlock
from src.providers.readers.text_reader import read_utf8

logger = structlog.get_logger(logger_name=__name__)

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_BULLET = re.compile(r"^\s*[-*+]\s+(.*)$")
_NUMBERED = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_TABLE_ROW = re.compile(r"^\s*\|.*\|\s*$")
_TABLE_SEPARATOR = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?\s*$")
_IMAGE = re.compile(r"^\s*!\[([^\]]*)\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)\s*$")
_FENCE = re.compile(r"^\s*(```|~~~)")
_TABLE_CAPTION = re.compile(r"^\s*(?:Table:\s*(.+)|\*(Table\b[^*]*)\*)\s*$", re.IGNORECASE)


def _split_row(line: str) -> list[str]:
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|") and not body.endswith("\\|"):
        body = body[:-1]
    cells = re.split(r"(?<!\\)\|", body)
    return [c.strip().replace("\\|", "|") for c in cells]


class MarkdownBlockReader(IBlockReader):
    """Reads ``.md`` / ``.markdown`` files into structural blocks."""

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".md", ".markdown")

    def read_blocks(self, path: str | Path) -> list[Block]:
        path = Path(path)
        lines = read_utf8(path, "markdown-reader").splitlines()
        return _MarkdownParser(lines, path.parent).parse()


class _MarkdownParser:
    """Single-pass line parser; one instance per file."""

    def __init__(self, lines: list[str], base_dir: Path) -> None:
        self._lines = lines
        self._base_dir = base_dir
        self._blocks: list[Block] = []
        self._paragraph: list[str] = []
        self._list_items: list[str] = []
        self._list_ordered = False
        self._pending_caption: str | None = None

    def parse(self) -> list[Block]:
        i = 0
        lines = self._lines
        while i < len(lines):
            line = lines[i]

            if _FENCE.match(line):
                i = self._consume_fence(i)
                continue

            if not line.strip():
                self._flush()
                i += 1
                continue

            heading = _HEADING.match(line)
            if heading:
                self._flush()
                self._emit(
                    HeadingBlock(
                        text=heading.group(2),
                        level=len(heading.group(1)),
                        order=self._next_order,
                    )
                )
                i += 1
                continue

            caption = _TABLE_CAPTION.match(line)
            if caption and i + 1 < len(lines) and _TABLE_ROW.match(lines[i + 1]):
                self._flush()
                self._pending_caption = (caption.group(1) or caption.group(2)).strip()
                i += 1
                continue

            if (
                _TABLE_ROW.match(line)
                and i + 1 < len(lines)
                and _TABLE_SEPARATOR.match(lines[i + 1])
            ):
                self._flush()
                i = self._consume_table(i)
                continue

            image = _IMAGE.match(line)
            if image:
                self._flush()
                self._emit_image(alt=image.group(1).strip(), target=image.group(2))
                i += 1
                continue

            bullet = _BULLET.match(line)
            numbered = _NUMBERED.match(line)
            if bullet or numbered:
                ordered = numbered is not None
                if self._paragraph or (self._list_items and ordered != self._list_ordered):
                    self._flush()
                self._list_ordered = ordered
                self._list_items.append((numbered or bullet).group(1).strip())
                i += 1
                continue

            if self._list_items and line.startswith((" ", "\t")):
                # continuation of the previous list item
                self._list_items[-1] = f"{self._list_items[-1]} {line.strip()}"
                i += 1
                continue

            if self._list_items:
                self._flush()
            self._paragraph.append(line)
            i += 1

        self._flush()
        return self._blocks

    # ------------------------------------------------------------------

    def _emit(self, block: Block) -> None:
        self._blocks.append(block)

    @property
    def _next_order(self) -> int:
        return len(self._blocks)

    def _flush(self) -> None:
        if self._paragraph:
            self._emit(TextBlock(text="\n".join(self._paragraph), order=self._next_order))
            self._paragraph = []
        if self._list_items:
            self._emit(
                ListBlock(
                    items=tuple(self._list_items),
                    ordered=self._list_ordered,
                    order=self._next_order,
                )
            )
            self._list_items = []

    def _consume_fence(self, start: int) -> int:
        self._flush()
        fence = _FENCE.match(self._lines[start]).group(1)
        body: list[str] = []
        i = start + 1
        while i < len(self._lines) and not self._lines[i].strip().startswith(fence):
            body.append(self._lines[i])
            i += 1
        if any(b.strip() for b in body):
            self._emit(TextBlock(text="\n".join(body), order=self._next_order))
        return i + 1

    def _consume_table(self, start: int) -> int:
        rows = [_split_row(self._lines[start])]
        i = start + 2
        while i < len(self._lines) and _TABLE_ROW.match(self._lines[i]):
            rows.append(_split_row(self._lines[i]))
            i += 1
        self._emit(
            TableBlock.from_rows(rows, order=self._next_order, caption=self._pending_caption)
        )
        self._pending_caption = None
        return i

    def _emit_image(self, alt: str, target: str) -> None:
        if target.startswith(("http://", "https://", "data:")):
            logger.debug("markdown_remote_image_skipped", target=target)
            return
        image_path = (self._base_dir / target).resolve()
        try:
            data = image_path.read_bytes()
        except OSError as exc:
            logger.warning("markdown_image_unreadable", path=str(image_path), error=str(exc))
            return
        # Empty alt text is treated as absent.
        self._emit(
            ImageBlock(
                data=data,
                description=alt or None,
                source_path=str(image_path),
                order=self._next_order,
            )
        )
