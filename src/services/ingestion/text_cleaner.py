"""Noise removal for text extracted from documents.

PDF and DOCX extraction drags along pagination markers, running headers,
links, contact details and control characters that only add noise to
embeddings.  :class:`TextCleaner` strips them while keeping the line
structure intact: single newlines survive and blank lines remain
paragraph boundaries for :class:`~src.services.ingestion.chunker.TextChunker`.

Cleaning is idempotent (``clean(clean(x)) == clean(x)``).  Removing one
artifact can expose another (deleting a URL can leave two spaces, or a
``Page 2`` now standing on its own), so the rule chain is re-applied until
the output stops changing.
"""

from __future__ import annotations

import re
import unicodedata

_MAX_PASSES = 32

_LINE_ENDINGS = re.compile(r"\r\n|\r|\u2028|\u2029|\x85")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_FULL_WIDTH_SPACES = re.compile(r"\u3000+")
_HEADER_FOOTER_LINES = re.compile(r"(?m)^[ \t]*(?:Header|Footer|页眉|页脚)[:：].*$")
_HYPHEN_BREAK = re.compile(r"([A-Za-z])-[ \t]*\n[ \t]*([A-Za-z])")
# "Page 3", "page 3 of 10", "p. 4", "P.4/10", "第 5 页", "第5/20页".  Must
# stand alone so "第5章" and "Page3D" survive.
_PAGE_MARKERS = re.compile(
    r"(?<!\S)(?:page|p\.|第|页)[ \t]*\d+"
    r"(?:[ \t]*(?:of|/|共|总)[ \t]*\d+)?"
    r"(?:[ \t]*页)?(?!\S)",
    re.IGNORECASE,
)
_URLS = re.compile(r"https?://\S+", re.IGNORECASE)
_EMAILS = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_CN_PHONES = re.compile(r"(?<!\d)1[3-9]\d{9}(?!\d)")
_US_PHONES = re.compile(r"(?<![\w.])(?:\+?1[-. ]?)?\(?\d{3}\)?[-. ]?\d{3}[-. ]\d{4}(?![\w.])")
# Digits are exempt so figures like 1000000 survive.
_REPEATED_CHARS = re.compile(r"([^\d\s])\1{3,}")
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_BLANK_LINE_RUNS = re.compile(r"\n{3,}")


class TextCleaner:
    """Pure, idempotent text normaliser.

    ``None`` and empty input return ``""``; no input raises.
    """

    def clean(self, raw: str | None) -> str:
        if not raw:
            return ""

        text = raw
        for _ in range(_MAX_PASSES):
            cleaned = self._apply_rules(text)
            if cleaned == text:
                break
            text = cleaned
        return text

    # ------------------------------------------------------------------
    # Rule chain
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_rules(text: str) -> str:
        text = unicodedata.normalize("NFC", text)
        text = _LINE_ENDINGS.sub("\n", text)
        text = _CONTROL_CHARS.sub("", text)
        text = _FULL_WIDTH_SPACES.sub(" ", text)
        text = _HEADER_FOOTER_LINES.sub("", text)
        text = _HYPHEN_BREAK.sub(r"\1\2", text)
        text = _PAGE_MARKERS.sub("", text)
        text = _URLS.sub("", text)
        text = _EMAILS.sub("", text)
        text = _CN_PHONES.sub("", text)
        text = _US_PHONES.sub("", text)
        text = _REPEATED_CHARS.sub(r"\1\1", text)
        text = _HORIZONTAL_WS.sub(" ", text)
        text = "\n".join(line.strip() for line in text.split("\n"))
        text = _BLANK_LINE_RUNS.sub("\n\n", text)
        return text.strip()
