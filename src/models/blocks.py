"""Document blocks -- the reader-side view of a document.

A block reader turns a file into an ordered list of blocks; the block mapper
turns each block into one or more :class:`~src.models.rag.Paragraph` records.
Blocks are a closed tagged union (:data:`Block`) of frozen dataclasses so
that consumers dispatch with ``match`` on the concrete type::

    match block:
        case HeadingBlock(text=text, level=level): ...
        case TableBlock(): ...

Every block carries an ``order`` hint (monotonic in reading order; ties keep
reader order) and an optional ``caption`` for tables and images.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class TextBlock:
    """A run of body text.  May span several blank-line separated paragraphs."""

    text: str
    order: int = 0
    caption: str | None = None


@dataclass(frozen=True)
class HeadingBlock:
    """A section heading; ``level`` 1 is the outermost."""

    text: str
    level: int = 1
    order: int = 0
    caption: str | None = None


@dataclass(frozen=True)
class ListBlock:
    """A bulleted (``ordered=False``) or numbered list of plain-text items."""

    items: tuple[str, ...] = ()
    ordered: bool = False
    order: int = 0
    caption: str | None = None


@dataclass(frozen=True)
class TableBlock:
    """A table with its markdown rendering and content hash.

    Build with :meth:`from_rows` so ``rendered`` and ``hash`` stay consistent
    with ``rows``.
    """

    rows: tuple[tuple[str, ...], ...] = ()
    rendered: str = ""
    hash: str = ""
    order: int = 0
    caption: str | None = None

    @classmethod
    def from_rows(
        cls,
        rows: list[list[str]] | tuple[tuple[str, ...], ...],
        order: int = 0,
        caption: str | None = None,
    ) -> TableBlock:
        frozen_rows = tuple(tuple(str(cell) for cell in row) for row in rows)
        return cls(
            rows=frozen_rows,
            rendered=render_table_markdown(frozen_rows),
            hash=table_hash(frozen_rows),
            order=order,
            caption=caption,
        )


@dataclass(frozen=True)
class ImageBlock:
    """An embedded image.

    ``description`` is whatever the document itself says about the image
    (markdown alt text, a DOCX ``descr`` attribute); ``source_path`` is the
    location the reader found it at, when it has one.
    """

    data: bytes = field(default=b"", repr=False)
    description: str | None = None
    source_path: str | None = None
    order: int = 0
    caption: str | None = None


Block = Union[TextBlock, HeadingBlock, ListBlock, TableBlock, ImageBlock]


# ---------------------------------------------------------------------------
# Table helpers
# ---------------------------------------------------------------------------

def _escape_cell(cell: str) -> str:
    return " ".join(cell.split()).replace("|", "\\|")


def render_table_markdown(rows: tuple[tuple[str, ...], ...] | list[list[str]]) -> str:
    """Render *rows* as a GitHub-flavoured markdown table.

    The first row is the header.  Short rows are padded with empty cells so
    every line has the same column count.  Empty input renders as ``""``.
    """
    if not rows:
        return ""

    width = max(len(row) for row in rows)
    if width == 0:
        return ""

    lines: list[str] = []
    for index, row in enumerate(rows):
        cells = [_escape_cell(c) for c in row] + [""] * (width - len(row))
        lines.append("| " + " | ".join(cells) + " |")
        if index == 0:
            lines.append("| " + " | ".join(["---"] * width) + " |")
    return "\n".join(lines)


def table_hash(rows: tuple[tuple[str, ...], ...] | list[list[str]]) -> str:
    """SHA-256 hex digest over the ``|``-joined cells, row by row."""
    payload = "\n".join("|".join(row) for row in rows)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
