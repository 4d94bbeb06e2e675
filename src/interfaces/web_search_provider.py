"""Abstract base class for web-search service providers.

Retrieval can blend live web results with knowledge-base hits.  Search
backends sit behind this contract so the retrieval orchestrator never
depends on a particular engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SearchResult:
    """A single web-search result.

    Attributes
    ----------
    name:
        Page title as returned by the engine.
    snippet:
        Text excerpt for the result.
    link:
        Result URL.
    """

    name: str
    snippet: str
    link: str


# Concrete implementation: DuckDuckGoSearchProvider (src/providers/search/)
class IWebSearchProvider(ABC):
    """Contract for web-search services used during retrieval."""

    @abstractmethod
    async def search(self, query: str, top: int = 5) -> list[SearchResult]:
        """Execute a web search and return up to *top* results.

        Parameters
        ----------
        query:
            The search query string.
        top:
            Maximum number of results.

        Returns
        -------
        list[SearchResult]
            Zero or more results ordered by engine relevance.

        Raises
        ------
        src.utils.errors.ProviderUnavailableError
            If the engine cannot be reached.  Retrieval treats any failure
            as zero web results.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"duckduckgo"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
