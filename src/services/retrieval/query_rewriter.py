"""Rule-based query expansion.

Short questions embed poorly against long passages, so retrieval searches
the original query plus a few rewritten variants.  Rewriting is
deterministic and needs no model.  Candidates are produced in priority order
and the first ``max_candidates`` distinct ones win:

1. synonym substitutions ("股票分析" -> "证券分析")
2. analysis-dimension qualifiers ("<query> 基本面")
3. time-frame qualifiers ("<query> 最新")
4. information-type qualifiers ("<query> 研报")
5. keyword pairs (longest keywords first)
6. the query with stop words removed

The vocabulary lives in :class:`QueryRewriteRules`; defaults come from
:mod:`src.config.domain_knowledge` and ``config/config.yaml`` can replace
any table.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog

from src.config import domain_knowledge

logger = structlog.get_logger(logger_name=__name__)

_CJK_RUN = re.compile(r"[\u4e00-\u9fa5]{2,}")
_ASCII_WORD = re.compile(r"^[A-Za-z]+$")
_YEAR = re.compile(r"^\d{4}$")
_WORD_SEPARATORS = re.compile(r"[ ，。、]+")
_MAX_KEYWORDS = 5


def _term_pattern(term: str) -> re.Pattern[str]:
    # ASCII terms match whole words only, so "AI" does not hit "remains".
    if term.isascii():
        return re.compile(rf"(?<![A-Za-z0-9]){re.escape(term)}(?![A-Za-z0-9])", re.IGNORECASE)
    return re.compile(re.escape(term), re.IGNORECASE)


@dataclass(frozen=True)
class QueryRewriteRules:
    """Vocabulary tables driving :class:`QueryRewriter`."""

    synonyms: dict[str, list[str]] = field(
        default_factory=lambda: dict(domain_knowledge.SYNONYMS)
    )
    analysis_dimensions: list[str] = field(
        default_factory=lambda: list(domain_knowledge.ANALYSIS_DIMENSIONS)
    )
    time_frames: list[str] = field(default_factory=lambda: list(domain_knowledge.TIME_FRAMES))
    info_types: list[str] = field(default_factory=lambda: list(domain_knowledge.INFO_TYPES))
    stop_words: frozenset[str] = field(
        default_factory=lambda: frozenset(domain_knowledge.REWRITE_STOP_WORDS)
    )

    @classmethod
    def from_config(cls, section: dict[str, Any] | None) -> QueryRewriteRules:
        """Build rules from the ``query_rewrite`` config section.

        Keys that are absent keep their defaults.
        """
        if not section:
            return cls()
        defaults = cls()
        return cls(
            synonyms={
                str(k): [str(v) for v in vs]
                for k, vs in section.get("synonyms", defaults.synonyms).items()
            },
            analysis_dimensions=[
                str(v) for v in section.get("analysis_dimensions", defaults.analysis_dimensions)
            ],
            time_frames=[str(v) for v in section.get("time_frames", defaults.time_frames)],
            info_types=[str(v) for v in section.get("info_types", defaults.info_types)],
            stop_words=frozenset(
                str(v) for v in section.get("stop_words", defaults.stop_words)
            ),
        )


class QueryRewriter:
    """Produces up to ``max_candidates`` variants of a query."""

    def __init__(self, rules: QueryRewriteRules | None = None) -> None:
        self._rules = rules or QueryRewriteRules()
        self._stop_words_folded = {w.casefold() for w in self._rules.stop_words}

    def rewrite(self, query: str | None, max_candidates: int = 3) -> list[str]:
        """Return distinct, non-blank variants of *query* in priority order.

        Blank *query* or ``max_candidates <= 0`` returns ``[]``.  Never
        raises; an internal error yields ``[]``.
        """
        if not query or not query.strip() or max_candidates <= 0:
            return []

        try:
            normalized = self._normalize(query)
            variants = _distinct(self._candidates(normalized), max_candidates)
        except Exception as exc:
            logger.error("query_rewrite_failed", query=query, error=str(exc))
            return []

        logger.debug("query_rewritten", query=query, variants=len(variants))
        return variants

    # ------------------------------------------------------------------
    # Candidate generation
    # ------------------------------------------------------------------

    def _candidates(self, query: str) -> Iterator[str]:
        yield from self._synonym_variants(query)
        for qualifier in self._rules.analysis_dimensions:
            yield f"{query} {qualifier}"
        for qualifier in self._rules.time_frames:
            yield f"{query} {qualifier}"
        for qualifier in self._rules.info_types:
            yield f"{query} {qualifier}"
        yield from self._keyword_variants(query)

        compact = self._remove_stop_words(query)
        if compact != query:
            yield compact

    def _synonym_variants(self, query: str) -> Iterator[str]:
        for term, replacements in self._rules.synonyms.items():
            if not term:
                continue
            pattern = _term_pattern(term)
            if not pattern.search(query):
                continue
            for replacement in replacements:
                yield pattern.sub(lambda _m, r=replacement: r, query)

    def _keyword_variants(self, query: str) -> Iterator[str]:
        keywords = self._extract_keywords(query)
        if len(keywords) <= 1:
            return
        # Pairs among the top keywords only: (0,1), (0,2), (1,2).
        for i in range(min(2, len(keywords))):
            for j in range(i + 1, min(3, len(keywords))):
                yield f"{keywords[i]} {keywords[j]}"

    @staticmethod
    def _extract_keywords(query: str) -> list[str]:
        keywords: list[str] = list(_CJK_RUN.findall(query))
        for word in _WORD_SEPARATORS.split(query):
            cleaned = word.strip("()[]\"'")
            if len(cleaned) >= 2 and (_ASCII_WORD.match(cleaned) or _YEAR.match(cleaned)):
                keywords.append(cleaned)

        seen: set[str] = set()
        unique: list[str] = []
        for keyword in keywords:
            folded = keyword.casefold()
            if folded not in seen:
                seen.add(folded)
                unique.append(keyword)
        # sorted() is stable, so equal lengths keep discovery order.
        return sorted(unique, key=len, reverse=True)[:_MAX_KEYWORDS]

    def _remove_stop_words(self, query: str) -> str:
        words = [w for w in _WORD_SEPARATORS.split(query) if w]
        return " ".join(w for w in words if w.casefold() not in self._stop_words_folded).strip()

    @staticmethod
    def _normalize(query: str) -> str:
        s = query.strip().replace("\r", "").replace("\n", "").replace("\t", " ")
        return re.sub(r"\s+", " ", s)


def _distinct(candidates: Iterable[str], limit: int) -> list[str]:
    """Trimmed, non-blank, case-insensitively distinct, at most *limit*."""
    seen: set[str] = set()
    result: list[str] = []
    for candidate in candidates:
        trimmed = candidate.strip()
        folded = trimmed.casefold()
        if trimmed and folded not in seen:
            seen.add(folded)
            result.append(trimmed)
            if len(result) >= limit:
                break
    return result
