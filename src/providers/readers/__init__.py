"""Document block readers.

One IBlockReader per format; BlockReaderRegistry picks by extension.
"""

from src.providers.readers.docx_reader import DocxBlockReader
from src.providers.readers.markdown_reader import MarkdownBlockReader
from src.providers.readers.pdf_reader import PdfBlockReader
from src.providers.readers.registry import BlockReaderRegistry
from src.providers.readers.text_reader import PlainTextBlockReader

__all__ = [
    "BlockReaderRegistry",
    "DocxBlockReader",
    "MarkdownBlockReader",
    "PdfBlockReader",
    "PlainTextBlockReader",
]
