"""FastAPI routes for ingestion and retrieval.

Endpoint                                          Method  Description
------------------------------------------------  ------  ---------------------------
/api/v1/health                                    GET     Health + provider status
/api/v1/ingest                                    POST    Ingest a file or directory
/api/v1/retrieve                                  POST    Query the knowledge base
/api/v1/collections/{collection}/paragraphs/{key} GET     Fetch one stored paragraph

Services are resolved from ``app.state`` (populated by ``main.py``) through
``Annotated[..., Depends(...)]`` aliases, so tests can build a bare app and
assign mocks to ``app.state``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from src.api.schemas import (
    HealthResponse,
    IngestRequest,
    IngestResponse,
    ParagraphResponse,
    RetrieveRequest,
    RetrieveResponse,
)
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.services.ingestion.ingestion_service import IngestionService
from src.services.retrieval.retrieval_service import RetrievalService
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

APP_VERSION = "0.1.0"

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependency injection helpers
# ---------------------------------------------------------------------------


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_retrieval_service(request: Request) -> RetrievalService:
    return request.app.state.retrieval_service


def _get_vector_store(request: Request) -> IVectorStoreProvider:
    return request.app.state.vector_store


def _get_default_collection(request: Request) -> str:
    return getattr(request.app.state, "default_collection", "groundwire_kb")


def _get_default_top(request: Request) -> int:
    settings = getattr(request.app.state, "settings", None)
    return settings.retrieval_top_k if settings is not None else 8


IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
RetrievalDep = Annotated[RetrievalService, Depends(_get_retrieval_service)]
VectorStoreDep = Annotated[IVectorStoreProvider, Depends(_get_vector_store)]
CollectionDep = Annotated[str, Depends(_get_default_collection)]
TopDep = Annotated[int, Depends(_get_default_top)]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``unhealthy`` when the vector store is down, ``degraded`` when the
    embedding provider reports itself unavailable, else ``healthy``.
    """
    providers = dict(getattr(request.app.state, "provider_registry", {}))

    vector_store = getattr(request.app.state, "vector_store", None)
    store_ok = vector_store is not None and vector_store.is_available()
    providers["vector_store_available"] = store_ok

    embedder = getattr(request.app.state, "embedding_provider", None)
    embed_ok = embedder is not None and embedder.is_available()
    providers["embedding_available"] = embed_ok

    if not store_ok:
        status = "unhealthy"
    elif not embed_ok:
        status = "degraded"
    else:
        status = "healthy"
    return HealthResponse(status=status, version=APP_VERSION, providers=providers)


@router.post("/ingest", response_model=IngestResponse, summary="Ingest a file or directory")
async def ingest(
    body: IngestRequest,
    service: IngestionDep,
    default_collection: CollectionDep,
) -> IngestResponse:
    """Ingest *body.path*; directories are walked recursively.

    A missing path is a 404, an unreadable single file a 422 (both via the
    error-handling middleware).  Per-file failures inside a directory are
    reported in the results with ``error`` set.
    """
    collection = body.collection or default_collection
    path = Path(body.path)
    if not path.exists():
        raise FileNotFoundError(f"Path not found: {body.path}")

    if path.is_dir():
        results = await service.ingest_directory(collection, path, published_at=body.published_at)
    else:
        results = [await service.ingest_file(collection, path, published_at=body.published_at)]

    return IngestResponse(
        collection=collection,
        results=results,
        paragraphs_processed=sum(r.paragraphs_processed for r in results),
        files_failed=sum(1 for r in results if r.error),
    )


@router.post("/retrieve", response_model=RetrieveResponse, summary="Query the knowledge base")
async def retrieve(
    body: RetrieveRequest,
    service: RetrievalDep,
    default_collection: CollectionDep,
    default_top: TopDep,
) -> RetrieveResponse:
    collection = body.collection or default_collection
    top = body.top if body.top is not None else default_top
    if body.web:
        results = await service.retrieve_with_web(body.query, collection, top)
    else:
        results = await service.retrieve(body.query, collection, top)
    return RetrieveResponse(
        query=body.query, collection=collection, results=results, count=len(results)
    )


@router.get(
    "/collections/{collection}/paragraphs/{key}",
    response_model=ParagraphResponse,
    summary="Fetch one stored paragraph by key",
)
async def get_paragraph(
    collection: str,
    key: str,
    store: VectorStoreDep,
    include_embeddings: bool = Query(False),
) -> ParagraphResponse:
    paragraph = await store.get(collection, key)
    if paragraph is None:
        raise HTTPException(status_code=404, detail=f"No paragraph '{key}' in '{collection}'")
    return ParagraphResponse.from_paragraph(paragraph, include_embeddings=include_embeddings)
