"""Extension-based lookup of block readers."""

from __future__ import annotations

from pathlib import Path

import structlog

from src.interfaces.block_reader import IBlockReader
from src.utils.errors import DocumentReadError

logger = structlog.get_logger(logger_name=__name__)


class BlockReaderRegistry:
    """Maps file extensions to :class:`IBlockReader` implementations.

    Later registrations win for an extension both readers claim.
    """

    def __init__(self, readers: list[IBlockReader] | None = None) -> None:
        self._by_extension: dict[str, IBlockReader] = {}
        for reader in readers or []:
            self.register(reader)

    @classmethod
    def default(cls) -> BlockReaderRegistry:
        """Registry with the Markdown, plain-text, PDF and DOCX readers."""
        from src.providers.readers.docx_reader import DocxBlockReader
        from src.providers.readers.markdown_reader import MarkdownBlockReader
        from src.providers.readers.pdf_reader import PdfBlockReader
        from src.providers.readers.text_reader import PlainTextBlockReader

        return cls(
            [MarkdownBlockReader(), PlainTextBlockReader(), PdfBlockReader(), DocxBlockReader()]
        )

    def register(self, reader: IBlockReader) -> None:
        for extension in reader.supported_extensions:
            self._by_extension[extension.lower()] = reader

    @property
    def supported_extensions(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_extension))

    def supports(self, path: str | Path) -> bool:
        return Path(path).suffix.lower() in self._by_extension

    def resolve(self, path: str | Path) -> IBlockReader:
        """Return the reader for *path*'s extension.

        Raises
        ------
        DocumentReadError
            If no registered reader handles the extension.
        """
        suffix = Path(path).suffix.lower()
        reader = self._by_extension.get(suffix)
        if reader is None:
            raise DocumentReadError(
                message=(
                    f"Unsupported document type '{suffix or '(none)'}' for {Path(path).name}; "
                    f"supported: {', '.join(self.supported_extensions)}"
                ),
                provider_name="reader-registry",
            )
        return reader
