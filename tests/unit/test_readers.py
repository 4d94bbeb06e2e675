"""Unit tests for the document block readers and the reader registry."""

from __future__ import annotations

import io

import fitz
import pytest
from docx import Document

from src.models.blocks import HeadingBlock, ImageBlock, ListBlock, TableBlock, TextBlock
from src.providers.readers.docx_reader import DocxBlockReader
from src.providers.readers.markdown_reader import MarkdownBlockReader
from src.providers.readers.pdf_reader import PdfBlockReader, looks_like_heading
from src.providers.readers.registry import BlockReaderRegistry
from src.providers.readers.text_reader import PlainTextBlockReader
from src.utils.errors import DocumentReadError
from src.utils.images import is_decodable_image
from tests.conftest import SAMPLE_MARKDOWN, make_png


# ======================================================================
# Markdown
# ======================================================================


class TestMarkdownBlockReader:
    def test_sample_document_structure(self, sample_markdown) -> None:
        blocks = MarkdownBlockReader().read_blocks(sample_markdown)

        assert [type(b) for b in blocks] == [
            HeadingBlock, TextBlock, TextBlock, ListBlock,
            TableBlock, ImageBlock, HeadingBlock, TextBlock,
        ]
        assert [b.order for b in blocks] == list(range(8))
        assert blocks[0].text == "Quarterly Report"
        assert blocks[6].level == 2

    def test_list_table_and_image_details(self, sample_markdown) -> None:
        blocks = MarkdownBlockReader().read_blocks(sample_markdown)
        lst, table, image = blocks[3], blocks[4], blocks[5]

        assert lst.items == ("Cloud revenue doubled", "Hardware sales were flat")
        assert lst.ordered is False
        assert table.caption == "Key figures"
        assert table.rows == (("Metric", "Value"), ("Revenue", "120"))
        assert image.description == "Revenue chart"
        assert image.data == make_png(seed=1)

    def test_numbered_list_and_fence(self, tmp_path) -> None:
        path = tmp_path / "steps.md"
        path.write_text(
            "1. first\n2) second\n\n```\n# not a heading\n```\n", encoding="utf-8"
        )
        blocks = MarkdownBlockReader().read_blocks(path)

        assert isinstance(blocks[0], ListBlock)
        assert blocks[0].ordered is True
        assert blocks[0].items == ("first", "second")
        assert isinstance(blocks[1], TextBlock)
        assert blocks[1].text == "# not a heading"

    def test_remote_and_missing_images_are_skipped(self, tmp_path) -> None:
        path = tmp_path / "links.md"
        path.write_text(
            "![remote](https://example.com/a.png)\n\n![gone](missing.png)\n\nText.\n",
            encoding="utf-8",
        )
        blocks = MarkdownBlockReader().read_blocks(path)
        assert len(blocks) == 1
        assert isinstance(blocks[0], TextBlock)

    def test_invalid_utf8_raises(self, tmp_path) -> None:
        path = tmp_path / "bad.md"
        path.write_bytes(b"# Title\n\xff\xfe\xfa")
        with pytest.raises(DocumentReadError):
            MarkdownBlockReader().read_blocks(path)

    def test_constant_matches_fixture(self, sample_markdown) -> None:
        assert sample_markdown.read_text(encoding="utf-8") == SAMPLE_MARKDOWN


# ======================================================================
# Plain text
# ======================================================================


class TestPlainTextBlockReader:
    def test_single_text_block(self, tmp_path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("one\n\ntwo\n", encoding="utf-8")
        blocks = PlainTextBlockReader().read_blocks(path)
        assert blocks == [TextBlock(text="one\n\ntwo\n", order=0)]

    def test_blank_file_yields_nothing(self, tmp_path) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("  \n\n", encoding="utf-8")
        assert PlainTextBlockReader().read_blocks(path) == []

    def test_bom_is_stripped(self, tmp_path) -> None:
        path = tmp_path / "bom.txt"
        path.write_bytes(b"\xef\xbb\xbfhello")
        assert PlainTextBlockReader().read_blocks(path)[0].text == "hello"


# ======================================================================
# PDF
# ======================================================================


class TestPdfBlockReader:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Chapter 3", True),
            ("PART IV", True),
            ("第三章 总论", True),
            ("EXECUTIVE SUMMARY", True),
            ("Revenue grew strongly.", False),
            ("Chapter 1\nmore text", False),
            ("", False),
        ],
    )
    def test_looks_like_heading(self, text: str, expected: bool) -> None:
        assert looks_like_heading(text) is expected

    def test_reads_text_headings_and_images(self, tmp_path) -> None:
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Chapter 1")
        page.insert_text((72, 300), "Revenue grew strongly in the third quarter.")
        page.insert_image(fitz.Rect(72, 400, 172, 500), stream=make_png(seed=4))
        path = tmp_path / "report.pdf"
        doc.save(str(path))
        doc.close()

        blocks = PdfBlockReader().read_blocks(path)

        headings = [b for b in blocks if isinstance(b, HeadingBlock)]
        texts = [b for b in blocks if isinstance(b, TextBlock)]
        images = [b for b in blocks if isinstance(b, ImageBlock)]
        assert [h.text for h in headings] == ["Chapter 1"]
        assert any("Revenue grew strongly" in t.text for t in texts)
        assert len(images) == 1
        assert is_decodable_image(images[0].data)
        assert isinstance(blocks[-1], ImageBlock)

    def test_corrupt_pdf_raises(self, tmp_path) -> None:
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf at all")
        with pytest.raises(DocumentReadError):
            PdfBlockReader().read_blocks(path)


# ======================================================================
# DOCX
# ======================================================================


class TestDocxBlockReader:
    def _build(self, tmp_path):
        document = Document()
        document.add_heading("Annual Review", level=1)
        document.add_paragraph("Revenue grew strongly.")
        document.add_paragraph("Cloud doubled", style="List Bullet")
        document.add_paragraph("Hardware flat", style="List Bullet")
        document.add_paragraph("Key figures", style="Caption")
        table = document.add_table(rows=2, cols=2)
        table.cell(0, 0).text = "Metric"
        table.cell(0, 1).text = "Value"
        table.cell(1, 0).text = "Revenue"
        table.cell(1, 1).text = "120"
        document.add_picture(io.BytesIO(make_png(seed=5)))
        path = tmp_path / "review.docx"
        document.save(str(path))
        return path

    def test_reads_blocks_in_body_order(self, tmp_path) -> None:
        blocks = DocxBlockReader().read_blocks(self._build(tmp_path))

        assert [type(b) for b in blocks] == [
            HeadingBlock, TextBlock, ListBlock, TableBlock, ImageBlock,
        ]
        assert blocks[0].text == "Annual Review"
        assert blocks[2].items == ("Cloud doubled", "Hardware flat")
        assert blocks[2].ordered is False
        assert blocks[3].caption == "Key figures"
        assert blocks[3].rows[1] == ("Revenue", "120")
        assert blocks[4].data == make_png(seed=5)

    def test_corrupt_docx_raises(self, tmp_path) -> None:
        path = tmp_path / "broken.docx"
        path.write_bytes(b"PK not really a zip")
        with pytest.raises(DocumentReadError):
            DocxBlockReader().read_blocks(path)


# ======================================================================
# Registry
# ======================================================================


class TestBlockReaderRegistry:
    def test_default_extensions(self) -> None:
        registry = BlockReaderRegistry.default()
        assert registry.supported_extensions == (".docx", ".markdown", ".md", ".pdf", ".txt")

    def test_resolve_is_case_insensitive(self) -> None:
        registry = BlockReaderRegistry.default()
        assert isinstance(registry.resolve("NOTES.MD"), MarkdownBlockReader)
        assert registry.supports("a.PDF") is True

    def test_unknown_extension_raises(self) -> None:
        registry = BlockReaderRegistry.default()
        assert registry.supports("image.png") is False
        with pytest.raises(DocumentReadError, match=r"\.png"):
            registry.resolve("image.png")

    def test_later_registration_wins(self) -> None:
        class TxtAsMarkdown(MarkdownBlockReader):
            @property
            def supported_extensions(self) -> tuple[str, ...]:
                return (".txt",)

        registry = BlockReaderRegistry([PlainTextBlockReader()])
        override = TxtAsMarkdown()
        registry.register(override)
        assert registry.resolve("a.txt") is override
