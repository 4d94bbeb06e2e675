"""Query-time retrieval: rewrite -> search (KB + web) -> merge -> rerank."""

from src.services.retrieval.query_rewriter import QueryRewriter, QueryRewriteRules
from src.services.retrieval.reranker import Reranker, RerankerConfig
from src.services.retrieval.retrieval_service import RetrievalService

__all__ = [
    "QueryRewriteRules",
    "QueryRewriter",
    "Reranker",
    "RerankerConfig",
    "RetrievalService",
]
