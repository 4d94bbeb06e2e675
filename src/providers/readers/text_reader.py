"""Plain-text block reader.

A ``.txt`` file becomes a single :class:`TextBlock`; the chunker later
splits it on blank lines.
"""

from __future__ import annotations

from pathlib import Path

from src.interfaces.block_reader import IBlockReader
from src.models.blocks import Block, TextBlock
from src.utils.errors import DocumentReadError


def read_utf8(path: Path, provider_name: str) -> str:
    """Read *path* as UTF-8 (BOM tolerated), wrapping failures."""
    try:
        return path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DocumentReadError(
            message=f"{path.name} is not valid UTF-8: {exc}",
            provider_name=provider_name,
        ) from exc
    except OSError as exc:
        raise DocumentReadError(
            message=f"Cannot read {path}: {exc}",
            provider_name=provider_name,
        ) from exc


class PlainTextBlockReader(IBlockReader):
    """Reads UTF-8 text files."""

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return (".txt",)

    def read_blocks(self, path: str | Path) -> list[Block]:
        text = read_utf8(Path(path), "text-reader")
        if not text.strip():
            return []
        return [TextBlock(text=text, order=0)]
