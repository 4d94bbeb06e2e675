"""Abstract base class for document block readers.

A block reader parses one document format into the ordered
:data:`~src.models.blocks.Block` sequence consumed by the block mapper.
Readers are synchronous (file parsing is CPU/disk bound); the ingestion
service runs them through ``asyncio.to_thread``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from src.models.blocks import Block


# Concrete implementations (src/providers/readers/):
#   MarkdownBlockReader  -- .md, .markdown
#   PlainTextBlockReader -- .txt
#   PdfBlockReader       -- .pdf via PyMuPDF
#   DocxBlockReader      -- .docx via python-docx
class IBlockReader(ABC):
    """Contract for turning a document file into blocks."""

    @property
    @abstractmethod
    def supported_extensions(self) -> tuple[str, ...]:
        """Lowercase file extensions handled by this reader, with the dot."""

    def can_read(self, path: str | Path) -> bool:
        """Return ``True`` when *path* has one of :attr:`supported_extensions`."""
        return Path(path).suffix.lower() in self.supported_extensions

    @abstractmethod
    def read_blocks(self, path: str | Path) -> list[Block]:
        """Parse *path* into blocks in reading order.

        Parameters
        ----------
        path:
            Local file path.

        Returns
        -------
        list[Block]
            Blocks with ``order`` set to their reading position.

        Raises
        ------
        src.utils.errors.DocumentReadError
            If the file is unreadable or corrupt.
        """
