"""HTTP-level tests for the API router and error handling middleware."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware, status_for
from src.api.routes import APP_VERSION, router
from src.components import build_components
from src.config.settings import Settings
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.utils.errors import (
    ConfigurationError,
    DocumentReadError,
    IngestionError,
    ProviderUnavailableError,
    RAGError,
)
from tests.conftest import EMBEDDING_DIM, MockEmbeddingProvider


@pytest.fixture
def app(tmp_path) -> FastAPI:
    settings = Settings(
        _env_file=None,
        vector_store_backend="memory",
        embedding_dimension=EMBEDDING_DIM,
        web_search_enabled=False,
        openai_api_key="",
        image_storage_dir=str(tmp_path / "images"),
        clip_image_onnx=str(tmp_path / "missing.onnx"),
        retrieval_top_k=3,
    )
    components = build_components(settings, {}, embedding_provider=MockEmbeddingProvider())

    application = FastAPI()
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    application.include_router(router)
    for name, component in components.items():
        setattr(application.state, name, component)
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestHealth:
    def test_healthy(self, client) -> None:
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == APP_VERSION
        assert body["providers"]["embedding"] == "mock-embedding"
        assert body["providers"]["vector_store_available"] is True
        assert body["providers"]["embedding_available"] is True

    def test_unhealthy_when_store_down(self, app, client) -> None:
        store = MagicMock(spec=IVectorStoreProvider)
        store.is_available.return_value = False
        app.state.vector_store = store

        assert client.get("/api/v1/health").json()["status"] == "unhealthy"

    def test_degraded_when_embedder_down(self, app, client) -> None:
        embedder = MagicMock()
        embedder.is_available.return_value = False
        app.state.embedding_provider = embedder

        assert client.get("/api/v1/health").json()["status"] == "degraded"


class TestRequestId:
    def test_generated_when_absent(self, client) -> None:
        response = client.get("/api/v1/health")
        assert len(response.headers["X-Request-ID"]) == 16

    def test_incoming_id_is_echoed(self, client) -> None:
        response = client.get("/api/v1/health", headers={"X-Request-ID": "trace-42"})
        assert response.headers["X-Request-ID"] == "trace-42"

    def test_error_responses_carry_the_id(self, client, tmp_path) -> None:
        response = client.post(
            "/api/v1/ingest",
            json={"path": str(tmp_path / "missing.md")},
            headers={"X-Request-ID": "trace-404"},
        )
        assert response.status_code == 404
        assert response.headers["X-Request-ID"] == "trace-404"


class TestIngestAndRetrieve:
    def test_ingest_file_then_retrieve(self, client, sample_markdown) -> None:
        response = client.post("/api/v1/ingest", json={"path": str(sample_markdown)})

        assert response.status_code == 200
        body = response.json()
        assert body["collection"] == "groundwire_kb"
        assert body["paragraphs_processed"] == 8
        assert body["files_failed"] == 0
        assert len(body["results"]) == 1

        response = client.post(
            "/api/v1/retrieve", json={"query": "Guidance remains unchanged for next year."}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert body["results"][0]["name"] == "txt_7"
        assert body["results"][0]["source"] == "knowledge_base"

    def test_ingest_directory_into_named_collection(self, client, sample_markdown) -> None:
        response = client.post(
            "/api/v1/ingest",
            json={"path": str(sample_markdown.parent), "collection": "manuals"},
        )
        body = response.json()
        assert response.status_code == 200
        assert body["collection"] == "manuals"
        assert body["paragraphs_processed"] == 8

        retrieved = client.post(
            "/api/v1/retrieve", json={"query": "revenue", "collection": "manuals", "top": 2}
        ).json()
        assert retrieved["count"] == 2

    def test_missing_path_is_404(self, client, tmp_path) -> None:
        response = client.post("/api/v1/ingest", json={"path": str(tmp_path / "absent.md")})
        assert response.status_code == 404
        assert response.json()["error"] == "FileNotFoundError"

    def test_unsupported_file_is_422(self, client, tmp_path) -> None:
        path = tmp_path / "table.csv"
        path.write_text("a,b\n", encoding="utf-8")
        response = client.post("/api/v1/ingest", json={"path": str(path)})
        assert response.status_code == 422
        assert response.json()["error"] == "DocumentReadError"

    def test_request_validation(self, client) -> None:
        assert client.post("/api/v1/ingest", json={"path": ""}).status_code == 422
        assert client.post("/api/v1/retrieve", json={"query": "x", "top": 101}).status_code == 422

    def test_blank_query_returns_nothing(self, client) -> None:
        body = client.post("/api/v1/retrieve", json={"query": "  "}).json()
        assert body["count"] == 0
        assert body["results"] == []


class TestGetParagraph:
    def test_fetch_by_key(self, app, client, sample_markdown) -> None:
        client.post("/api/v1/ingest", json={"path": str(sample_markdown), "collection": "docs"})
        store = app.state.vector_store
        image_key = next(k for k, p in store._collections["docs"].items() if p.paragraph_id == "img_5")

        body = client.get(f"/api/v1/collections/docs/paragraphs/{image_key}").json()
        assert body["paragraph_id"] == "img_5"
        assert body["block_kind"] == 4
        assert body["has_image_embedding"] is True
        assert body["text_embedding"] is None

        full = client.get(
            f"/api/v1/collections/docs/paragraphs/{image_key}",
            params={"include_embeddings": "true"},
        ).json()
        assert len(full["text_embedding"]) == EMBEDDING_DIM
        assert len(full["image_embedding"]) == EMBEDDING_DIM

    def test_unknown_key_is_404(self, client) -> None:
        response = client.get("/api/v1/collections/docs/paragraphs/missing")
        assert response.status_code == 404


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (FileNotFoundError("x"), 404),
            (DocumentReadError(message="x"), 422),
            (IngestionError(message="x"), 400),
            (RAGError(message="x"), 503),
            (ProviderUnavailableError(message="x"), 503),
            (ConfigurationError(message="x"), 500),
        ],
    )
    def test_status_for(self, exc, status) -> None:
        assert status_for(exc) == status
