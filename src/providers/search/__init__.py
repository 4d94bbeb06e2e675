"""Web-search provider implementations.

Currently only DuckDuckGo (free, no API key).  Another engine can be added
by implementing IWebSearchProvider and wiring it in main.py.
"""

from src.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider

__all__ = ["DuckDuckGoSearchProvider"]
