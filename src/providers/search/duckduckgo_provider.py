"""DuckDuckGo web-search provider implementing IWebSearchProvider.

Uses the duckduckgo_search library for fully free, keyless web searches.
The synchronous ``DDGS`` client is wrapped in ``asyncio.to_thread``.
Engine failures (rate limits, network errors) are raised as
:class:`ProviderUnavailableError`; retrieval counts them as zero results.
"""

from __future__ import annotations

import asyncio

import structlog
from duckduckgo_search import DDGS

from src.interfaces.web_search_provider import IWebSearchProvider, SearchResult
from src.utils.errors import ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)


class DuckDuckGoSearchProvider(IWebSearchProvider):
    """DuckDuckGo web-search provider.

    Parameters
    ----------
    region:
        DuckDuckGo region code, e.g. ``"wt-wt"`` (no region) or ``"cn-zh"``.
    """

    def __init__(self, region: str = "wt-wt") -> None:
        self._region = region
        logger.info("duckduckgo_provider_initialized", region=region)

    async def search(self, query: str, top: int = 5) -> list[SearchResult]:
        """Execute a DuckDuckGo text search and return up to *top* results."""
        if not query or not query.strip() or top <= 0:
            return []

        try:
            raw_results = await asyncio.to_thread(self._sync_search, query, top)
        except Exception as exc:
            raise ProviderUnavailableError(
                message=f"DuckDuckGo search failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        results: list[SearchResult] = []
        for item in raw_results or []:
            link = item.get("href", item.get("url", ""))
            if not link:
                continue
            results.append(
                SearchResult(
                    name=item.get("title", "") or "",
                    snippet=item.get("body", "") or "",
                    link=link,
                )
            )

        logger.debug("duckduckgo_search_complete", query=query, result_count=len(results))
        return results[:top]

    def _sync_search(self, query: str, max_results: int) -> list[dict]:
        """Run the synchronous DDGS search (called via to_thread)."""
        with DDGS() as ddgs:
            return list(ddgs.text(query, region=self._region, max_results=max_results))

    def get_provider_name(self) -> str:
        """Return the provider identifier."""
        return "duckduckgo"

    def is_available(self) -> bool:
        """DuckDuckGo is always available (no API key required)."""
        return True
