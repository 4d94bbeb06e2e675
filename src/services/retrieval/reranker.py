"""Heuristic reranking of fused retrieval candidates.

Knowledge-base hits and web hits arrive with incomparable scores (cosine
similarity vs. search-engine rank), so the fused list is re-scored with one
formula that works on text alone::

    score = w_rel * relevance + w_fresh * freshness + w_len * length

followed by a diversity pass that multiplies a candidate's score by the
similarity penalty once for every earlier candidate whose token set overlaps
it by more than the Jaccard threshold.

* **relevance** -- token overlap between query and candidate, weighted by
  the keyword bonus table, plus a bonus when the whole query appears
  verbatim.  Tokens are lowercase alphanumeric runs; CJK runs are expanded
  into 2- and 3-grams since they carry no spaces.
* **freshness** -- a date in the link (``/2024/05/01``, ``/20240501``,
  ``2024年5月1日`` ...) bucketed by age in years, else a time keyword in the
  text, else neutral.
* **length** -- snippets between 200 and 1000 characters score best.

The output is always a permutation of the input; ties keep input order.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import structlog

from src.config import domain_knowledge
from src.models.rag import RetrievalResult

logger = structlog.get_logger(logger_name=__name__)

_NON_ALNUM = re.compile(r"[\W_]+")


@dataclass(frozen=True)
class RerankerConfig:
    """Weights, thresholds and vocabulary for :class:`Reranker`."""

    relevance_weight: float = 0.55
    freshness_weight: float = 0.25
    length_weight: float = 0.20
    exact_match_bonus: float = 0.2
    similarity_threshold: float = 0.7
    similarity_penalty: float = 0.8
    cjk_min_gram: int = 2
    cjk_max_gram: int = 3
    keyword_bonuses: dict[str, float] = field(
        default_factory=lambda: dict(domain_knowledge.KEYWORD_BONUSES)
    )
    time_keywords: dict[str, float] = field(
        default_factory=lambda: dict(domain_knowledge.TIME_KEYWORDS)
    )
    age_scores: dict[int, float] = field(
        default_factory=lambda: dict(domain_knowledge.AGE_SCORES)
    )
    freshness_floor: float = domain_knowledge.FRESHNESS_FLOOR
    freshness_unknown: float = domain_knowledge.FRESHNESS_UNKNOWN
    link_date_patterns: list[str] = field(
        default_factory=lambda: list(domain_knowledge.LINK_DATE_PATTERNS)
    )
    stop_words: frozenset[str] = field(
        default_factory=lambda: frozenset(domain_knowledge.RERANK_STOP_WORDS)
    )

    @classmethod
    def from_config(cls, section: dict[str, Any] | None) -> RerankerConfig:
        """Build a config from the ``reranker`` config section.

        Recognised keys mirror the field names; ``weights`` may also be
        given as a nested ``{relevance, freshness, length}`` mapping.
        """
        if not section:
            return cls()

        overrides: dict[str, Any] = {}
        weights = section.get("weights") or {}
        for key, name in (
            ("relevance", "relevance_weight"),
            ("freshness", "freshness_weight"),
            ("length", "length_weight"),
        ):
            if key in weights:
                overrides[name] = float(weights[key])

        for name in (
            "relevance_weight", "freshness_weight", "length_weight", "exact_match_bonus",
            "similarity_threshold", "similarity_penalty", "freshness_floor", "freshness_unknown",
        ):
            if name in section:
                overrides[name] = float(section[name])
        for name in ("cjk_min_gram", "cjk_max_gram"):
            if name in section:
                overrides[name] = int(section[name])
        if "keyword_bonuses" in section:
            overrides["keyword_bonuses"] = {
                str(k).lower(): float(v) for k, v in section["keyword_bonuses"].items()
            }
        if "time_keywords" in section:
            overrides["time_keywords"] = {
                str(k).lower(): float(v) for k, v in section["time_keywords"].items()
            }
        if "age_scores" in section:
            overrides["age_scores"] = {int(k): float(v) for k, v in section["age_scores"].items()}
        if "link_date_patterns" in section:
            overrides["link_date_patterns"] = [str(p) for p in section["link_date_patterns"]]
        if "stop_words" in section:
            overrides["stop_words"] = frozenset(str(w).lower() for w in section["stop_words"])
        return cls(**overrides)


@dataclass
class _Scored:
    index: int
    item: RetrievalResult
    tokens: Counter
    relevance: float = 0.0
    freshness: float = 0.0
    length: float = 0.0
    total: float = 0.0


class Reranker:
    """Scores and reorders retrieval candidates.

    Parameters
    ----------
    config:
        Weights and tables; defaults when omitted.
    today:
        Clock used for link-date freshness, injectable for tests.
    """

    def __init__(
        self,
        config: RerankerConfig | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._config = config or RerankerConfig()
        self._today = today
        self._date_patterns = [re.compile(p) for p in self._config.link_date_patterns]

    def rerank(self, query: str | None, candidates: list[RetrievalResult]) -> list[RetrievalResult]:
        """Return *candidates* reordered by descending score.

        Empty input returns ``[]``; a blank query or a single candidate
        returns the input order unchanged.  A scoring error is logged and
        the input order returned.
        """
        items = list(candidates)
        safe_query = (query or "").strip()
        if len(items) <= 1 or not safe_query:
            return items

        try:
            scored = self._score_all(safe_query, items)
            self._apply_diversity(scored)
            ranked = sorted(scored, key=lambda s: (-s.total, s.index))
        except Exception as exc:
            logger.error("rerank_failed", query=safe_query, error=str(exc))
            return items

        for position, s in enumerate(ranked[:3], start=1):
            logger.debug(
                "rerank_top",
                position=position,
                total=round(s.total, 3),
                relevance=round(s.relevance, 3),
                freshness=round(s.freshness, 3),
                length=round(s.length, 3),
                name=s.item.name[:50],
            )
        return [s.item for s in ranked]

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _score_all(self, query: str, items: list[RetrievalResult]) -> list[_Scored]:
        cfg = self._config
        query_tokens = self.tokenize(query)
        scored: list[_Scored] = []
        for index, item in enumerate(items):
            text = self._full_text(item)
            s = _Scored(index=index, item=item, tokens=self.tokenize(text))
            s.relevance = self._relevance(query_tokens, s.tokens, query, text)
            s.freshness = self._freshness(item)
            s.length = self._length_score(text)
            s.total = (
                cfg.relevance_weight * s.relevance
                + cfg.freshness_weight * s.freshness
                + cfg.length_weight * s.length
            )
            scored.append(s)
        return scored

    def _relevance(self, query_tokens: Counter, item_tokens: Counter, query: str, text: str) -> float:
        if not query_tokens:
            return 0.0

        bonus_sum = sum(self._bonus(t) for t in query_tokens)
        matched = 0
        weighted = 0.0
        for token in query_tokens:
            frequency = item_tokens.get(token, 0)
            if frequency:
                matched += 1
                weighted += self._bonus(token) * frequency

        base = matched / len(query_tokens)
        weighted_score = weighted / bonus_sum if bonus_sum > 0 else 0.0
        exact = self._config.exact_match_bonus if query.casefold() in text.casefold() else 0.0
        return min(1.0, 0.6 * base + 0.3 * weighted_score + 0.1 + exact)

    def _freshness(self, item: RetrievalResult) -> float:
        year = self._year_from_link(item.link)
        if year is not None:
            age = max(0, self._today().year - year)
            return self._config.age_scores.get(age, self._config.freshness_floor)

        content = (item.value or "").lower()
        if content:
            for keyword, score in self._config.time_keywords.items():
                if keyword in content:
                    return score
        return self._config.freshness_unknown

    def _year_from_link(self, link: str) -> int | None:
        if not link:
            return None
        for pattern in self._date_patterns:
            match = pattern.search(link)
            if match:
                return int(match.group(1))
        return None

    @staticmethod
    def _length_score(text: str) -> float:
        if not text.strip():
            return 0.0
        length = len(text)
        if 200 <= length <= 1000:
            return 1.0
        if 100 <= length <= 1500:
            return 0.8
        if 50 <= length <= 2000:
            return 0.6
        if length < 50:
            return 0.3
        return max(0.2, 1.0 - (length - 2000) / 10000.0)

    # ------------------------------------------------------------------
    # Diversity
    # ------------------------------------------------------------------

    def _apply_diversity(self, scored: list[_Scored]) -> None:
        cfg = self._config
        token_sets = [set(s.tokens) for s in scored]
        for i, current in enumerate(scored):
            factor = 1.0
            for j in range(i):
                if _jaccard(token_sets[i], token_sets[j]) > cfg.similarity_threshold:
                    factor *= cfg.similarity_penalty
            current.total *= factor

    # ------------------------------------------------------------------
    # Tokenization
    # ------------------------------------------------------------------

    def tokenize(self, text: str) -> Counter:
        """Return token frequencies for *text*.

        ASCII tokens must be longer than one character and not stop words;
        tokens containing CJK characters are expanded into n-grams.
        """
        counts: Counter = Counter()
        if not text or not text.strip():
            return counts

        for raw in _NON_ALNUM.sub(" ", text.lower()).split():
            if any(_is_cjk(ch) for ch in raw):
                counts.update(self._cjk_ngrams(raw))
            elif len(raw) > 1 and raw.isascii() and raw.isalnum() and raw not in self._config.stop_words:
                counts[raw] += 1
        return counts

    def _cjk_ngrams(self, token: str) -> list[str]:
        grams: list[str] = []
        for n in range(self._config.cjk_min_gram, self._config.cjk_max_gram + 1):
            grams.extend(token[i : i + n] for i in range(len(token) - n + 1))
        return grams

    def _bonus(self, token: str) -> float:
        return self._config.keyword_bonuses.get(token, 1.0)

    @staticmethod
    def _full_text(item: RetrievalResult) -> str:
        return " ".join(part for part in (item.name, item.value) if part and part.strip())


def _is_cjk(ch: str) -> bool:
    return "\u4e00" <= ch <= "\u9fff" or "\u3400" <= ch <= "\u4dbf" or "\uf900" <= ch <= "\ufaff"


def _jaccard(a: set[str], b: set[str]) -> float:
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union if union else 0.0
