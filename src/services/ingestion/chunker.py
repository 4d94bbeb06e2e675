"""Text chunking with paragraph boundary preservation and sentence overlap.

Splits cleaned text into :class:`~src.models.rag.ChunkRecord` objects sized
for embedding models (~400 tokens each, 40 tokens of overlap).

1. **Paragraph-preserving** -- Each blank-line separated paragraph becomes
   its own chunk, so no chunk starts or ends mid-thought.

2. **Sentence overlap** -- A paragraph over the budget is split at sentence
   boundaries (abbreviation-aware, so "Dr." or "vs." never end a sentence)
   and consecutive pieces share up to ``overlap_tokens`` of trailing
   sentences.

3. **Midpoint cuts** -- A single sentence still over the budget is cut at
   the separator closest to its middle, trying newlines first, then
   sentence punctuation, clause punctuation, brackets, spaces and hyphens,
   and finally a hard cut.

Keys are derived from the document URI, the chunk index and the chunk
text, so chunking the same text twice yields identical records.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterator

import structlog

from src.models.rag import ChunkRecord

logger = structlog.get_logger(logger_name=__name__)

# Common abbreviations that should NOT trigger a sentence split.
_ABBREVIATIONS = frozenset(
    {
        "Dr", "Mr", "Mrs", "Ms", "Prof", "Jr", "Sr", "St", "No", "vs",
        "etc", "approx", "dept", "est", "govt", "Inc", "inc", "Ltd", "ltd",
        "Co", "co", "Corp", "corp", "Fig", "fig", "e.g", "i.e", "U.S",
    }
)

# Separator tiers for cutting an over-long sentence, tried in order.  ``None``
# is the hard midpoint cut.
_SPLIT_TIERS: tuple[str | None, ...] = (
    "\n", ".。．", "?!？！", ";；", ":：", ",，、", ")]}）】", " ", "-", None,
)

_SENTENCE_END = re.compile(r"[.!?。！？](?:\s|$)|[。！？]")


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class TextChunker:
    """Splits text into paragraph-aligned chunks.

    Parameters
    ----------
    max_tokens:
        Maximum approximate token count per chunk (default 400).
    overlap_tokens:
        Tokens of trailing sentences repeated at the start of the next piece
        of a split paragraph (default 40).
    """

    def __init__(self, max_tokens: int = 400, overlap_tokens: int = 40) -> None:
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if overlap_tokens < 0 or overlap_tokens >= max_tokens:
            raise ValueError("overlap_tokens must be in [0, max_tokens)")
        self._max_tokens = max_tokens
        self._overlap_tokens = overlap_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, document_uri: str, text: str | None) -> Iterator[ChunkRecord]:
        """Lazily yield chunks of *text* in document order.

        Parameters
        ----------
        document_uri:
            URI of the source document; part of every chunk key.
        text:
            Cleaned text.  ``None`` or blank yields nothing.

        Yields
        ------
        ChunkRecord
            ``key = sha256(document_uri):index:sha256(text)[:8]``.
        """
        if not text or not text.strip():
            return

        uri_hash = sha256_hex(document_uri)
        index = 0
        for paragraph in self._split_paragraphs(text):
            for piece in self._split_paragraph(paragraph):
                yield ChunkRecord(
                    key=f"{uri_hash}:{index}:{sha256_hex(piece)[:8]}",
                    document_uri=document_uri,
                    text=piece,
                )
                index += 1

        logger.debug("chunking_complete", document_uri=document_uri, num_chunks=index)

    # ------------------------------------------------------------------
    # Token counting
    # ------------------------------------------------------------------

    @staticmethod
    def count_tokens(text: str) -> int:
        """Approximate token count, ``len(text) // 4``."""
        return len(text) // 4

    # ------------------------------------------------------------------
    # Paragraph / sentence splitting
    # ------------------------------------------------------------------

    @staticmethod
    def _split_paragraphs(text: str) -> list[str]:
        """Split *text* on blank lines, discarding blanks."""
        parts = re.split(r"\n\s*\n", text)
        return [p.strip() for p in parts if p.strip()]

    @staticmethod
    def _split_sentences(text: str) -> list[str]:
        """Split *text* at sentence boundaries while respecting abbreviations.

        Periods after known abbreviations are masked with ``\\x00`` (same
        length, so indices stay aligned with the original text).
        """
        masked = text
        for abbr in _ABBREVIATIONS:
            masked = re.sub(rf"\b{re.escape(abbr)}\.", f"{abbr}\x00", masked)

        sentences: list[str] = []
        last = 0
        for match in _SENTENCE_END.finditer(masked):
            end = match.end()
            sentence = text[last:end].strip()
            if sentence:
                sentences.append(sentence)
            last = end

        remainder = text[last:].strip()
        if remainder:
            sentences.append(remainder)

        return sentences if sentences else [text]

    # ------------------------------------------------------------------
    # Budget enforcement
    # ------------------------------------------------------------------

    def _split_paragraph(self, paragraph: str) -> list[str]:
        if self.count_tokens(paragraph) <= self._max_tokens:
            return [paragraph]

        units: list[str] = []
        for sentence in self._split_sentences(paragraph):
            if self.count_tokens(sentence) > self._max_tokens:
                units.extend(self._cut_long_text(sentence, 0))
            else:
                units.append(sentence)

        return self._accumulate(units)

    def _accumulate(self, units: list[str]) -> list[str]:
        """Greedily pack *units* up to the budget, carrying a sentence overlap.

        Budgets are checked on the joined text, separators included.
        """
        pieces: list[str] = []
        current: list[str] = []

        for unit in units:
            if current and self._joined_tokens(current, unit) > self._max_tokens:
                pieces.append(" ".join(current))
                current = self._build_overlap(current)
                # The overlap must leave room for the unit itself.
                while current and self._joined_tokens(current, unit) > self._max_tokens:
                    current.pop(0)
            current.append(unit)

        if current:
            pieces.append(" ".join(current))
        return pieces

    def _build_overlap(self, parts: list[str]) -> list[str]:
        """Return the longest tail of *parts* that fits in ``overlap_tokens``."""
        overlap: list[str] = []
        for text in reversed(parts):
            if self.count_tokens(" ".join([text, *overlap])) > self._overlap_tokens:
                break
            overlap.insert(0, text)
        return overlap

    def _joined_tokens(self, parts: list[str], unit: str) -> int:
        return self.count_tokens(" ".join([*parts, unit]))

    def _cut_long_text(self, text: str, tier: int) -> list[str]:
        """Recursively cut *text* near its midpoint until every piece fits."""
        text = text.strip()
        if not text:
            return []
        if self.count_tokens(text) <= self._max_tokens:
            return [text]

        for level in range(tier, len(_SPLIT_TIERS)):
            cut = self._find_cut(text, _SPLIT_TIERS[level])
            if cut is None:
                continue
            return self._cut_long_text(text[:cut], level) + self._cut_long_text(text[cut:], level)

        return [text]

    @staticmethod
    def _find_cut(text: str, separators: str | None) -> int | None:
        """Return the cut index nearest the middle, or ``None``.

        The cut falls just after the chosen separator; both halves must be
        non-empty.
        """
        half = len(text) // 2
        if separators is None:
            return half if half > 0 else None

        best: int | None = None
        for index, char in enumerate(text[:-1]):
            if char in separators:
                cut = index + 1
                if best is None or abs(half - cut) < abs(half - best):
                    best = cut
        return best
