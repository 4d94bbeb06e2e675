"""Hybrid retrieval: query expansion, vector search, web search, rerank.

Flow for one query:

    1. QueryRewriter     -- original query plus up to N rule-based variants
    2. IEmbeddingProvider + IVectorStoreProvider
                         -- one embed + search per variant, concurrently
    3. IWebSearchProvider (optional)
                         -- one search for the original query, under its
                            own timeout, concurrently with step 2
    4. merge             -- dedupe on link|name|value, first occurrence wins
    5. Reranker          -- reorder against the original query, keep top N

Per-variant and web failures are logged and contribute nothing; only a
store that cannot open the collection is fatal.  With a failing web
collaborator, :meth:`RetrievalService.retrieve_with_web` returns exactly
what :meth:`RetrievalService.retrieve` would.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from src.interfaces.vector_store_provider import TEXT_EMBEDDING_FIELD
from src.models.rag import RetrievalResult
from src.utils.concurrency import gather_settled

if TYPE_CHECKING:
    from src.interfaces.embedding_provider import IEmbeddingProvider
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.interfaces.web_search_provider import IWebSearchProvider
    from src.services.retrieval.query_rewriter import QueryRewriter
    from src.services.retrieval.reranker import Reranker

logger = structlog.get_logger(logger_name=__name__)

SOURCE_KNOWLEDGE_BASE = "knowledge_base"
SOURCE_WEB = "web"


class RetrievalService:
    """Answers queries from the knowledge base, optionally blended with the web.

    Parameters
    ----------
    embedding_provider:
        Embeds query variants; must match the store's dimension.
    vector_store:
        Store to search.
    rewriter:
        Produces query variants.
    reranker:
        Orders the fused candidates.
    web_search:
        Optional web search backend used by :meth:`retrieve_with_web`.
    rewrite_max_candidates:
        Maximum number of rewritten variants besides the original query.
    web_top:
        Number of web results requested.
    web_timeout:
        Seconds allowed for the web search before it counts as empty.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        rewriter: QueryRewriter,
        reranker: Reranker,
        web_search: IWebSearchProvider | None = None,
        rewrite_max_candidates: int = 3,
        web_top: int = 5,
        web_timeout: float = 8.0,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._rewriter = rewriter
        self._reranker = reranker
        self._web_search = web_search
        self._rewrite_max_candidates = rewrite_max_candidates
        self._web_top = web_top
        self._web_timeout = web_timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def retrieve(self, query: str, collection: str, top: int = 8) -> list[RetrievalResult]:
        """Return up to *top* knowledge-base results for *query*.

        Raises
        ------
        src.utils.errors.RAGError
            If the store cannot open *collection*.
        """
        return await self._retrieve(query, collection, top, include_web=False)

    async def retrieve_with_web(
        self, query: str, collection: str, top: int = 8
    ) -> list[RetrievalResult]:
        """Like :meth:`retrieve`, blending in web search results."""
        return await self._retrieve(query, collection, top, include_web=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _retrieve(
        self, query: str, collection: str, top: int, include_web: bool
    ) -> list[RetrievalResult]:
        if not query or not query.strip() or top <= 0:
            return []

        await self._vector_store.ensure_collection_exists(collection)

        variants = self._variants(query)
        kb_task = gather_settled(
            [self._search_variant(collection, v, top) for v in variants],
            labels=variants,
            event="variant_search_failed",
            logger=logger,
        )
        web = self._web_search if include_web else None
        if web is not None:
            kb_lists, web_results = await asyncio.gather(kb_task, self._search_web(web, query))
        else:
            kb_lists, web_results = await kb_task, []

        merged = self._dedupe([r for hits in kb_lists for r in hits] + web_results)
        ranked = self._reranker.rerank(query, merged)[:top]

        logger.info(
            "retrieval_complete",
            query=query,
            collection=collection,
            variants=len(variants),
            web=include_web,
            candidates=len(merged),
            returned=len(ranked),
        )
        return ranked

    def _variants(self, query: str) -> list[str]:
        seen: set[str] = set()
        variants: list[str] = []
        for candidate in [query, *self._rewriter.rewrite(query, self._rewrite_max_candidates)]:
            trimmed = candidate.strip()
            folded = trimmed.casefold()
            if trimmed and folded not in seen:
                seen.add(folded)
                variants.append(trimmed)
        return variants

    async def _search_variant(self, collection: str, variant: str, top: int) -> list[RetrievalResult]:
        vector = await self._embedding_provider.embed_single(variant)
        hits = await self._vector_store.search(collection, vector, top, TEXT_EMBEDDING_FIELD)
        return [
            RetrievalResult(
                name=hit.paragraph.paragraph_id,
                value=hit.paragraph.text,
                link=hit.paragraph.document_uri,
                source=SOURCE_KNOWLEDGE_BASE,
            )
            for hit in hits
        ]

    async def _search_web(self, web: IWebSearchProvider, query: str) -> list[RetrievalResult]:
        try:
            results = await asyncio.wait_for(web.search(query, self._web_top), timeout=self._web_timeout)
        except asyncio.TimeoutError:
            logger.warning("web_search_timeout", query=query, timeout_s=self._web_timeout)
            return []
        except Exception as exc:
            logger.warning(
                "web_search_failed",
                query=query,
                provider=web.get_provider_name(),
                error=str(exc),
            )
            return []

        return [
            RetrievalResult(name=r.name, value=r.snippet, link=r.link, source=SOURCE_WEB)
            for r in results
        ]

    @staticmethod
    def _dedupe(results: list[RetrievalResult]) -> list[RetrievalResult]:
        seen: set[str] = set()
        unique: list[RetrievalResult] = []
        for result in results:
            if result.dedupe_key not in seen:
                seen.add(result.dedupe_key)
                unique.append(result)
        return unique
