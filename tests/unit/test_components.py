"""Unit tests for component assembly."""

from __future__ import annotations

import pytest

from src.components import build_components, build_embedding_provider, build_vector_store
from src.config.settings import Settings
from src.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from src.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider
from src.providers.vector_store.memory_provider import InMemoryVectorStore
from src.services.ingestion.ingestion_service import IngestionService
from src.services.retrieval.retrieval_service import RetrievalService
from src.utils.errors import ConfigurationError
from tests.conftest import EMBEDDING_DIM, MockEmbeddingProvider


def _settings(tmp_path, **overrides) -> Settings:
    values = dict(
        vector_store_backend="memory",
        embedding_dimension=EMBEDDING_DIM,
        web_search_enabled=False,
        openai_api_key="",
        image_storage_dir=str(tmp_path / "images"),
        clip_image_onnx=str(tmp_path / "missing.onnx"),
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestBuilders:
    def test_unknown_embedding_backend(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="EMBEDDING_BACKEND"):
            build_embedding_provider(_settings(tmp_path, embedding_backend="word2vec"))

    def test_dimension_mismatch(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="EMBEDDING_DIMENSION"):
            build_embedding_provider(_settings(tmp_path, embedding_backend="fastembed"))

    def test_fastembed_default(self, tmp_path) -> None:
        provider = build_embedding_provider(
            _settings(tmp_path, embedding_backend="fastembed", embedding_dimension=1024)
        )
        assert isinstance(provider, FastEmbedEmbeddingProvider)

    def test_memory_store(self, tmp_path) -> None:
        assert isinstance(build_vector_store(_settings(tmp_path)), InMemoryVectorStore)

    def test_unknown_store(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="VECTOR_STORE_BACKEND"):
            build_vector_store(_settings(tmp_path, vector_store_backend="faiss"))


class TestBuildComponents:
    def test_wires_services(self, tmp_path) -> None:
        components = build_components(
            _settings(tmp_path), {}, embedding_provider=MockEmbeddingProvider()
        )

        assert isinstance(components["ingestion_service"], IngestionService)
        assert isinstance(components["retrieval_service"], RetrievalService)
        assert isinstance(components["vector_store"], InMemoryVectorStore)
        assert components["web_search"] is None
        assert components["default_collection"] == "groundwire_kb"
        assert components["provider_registry"] == {
            "embedding": "mock-embedding",
            "vector_store": "memory",
            "web_search": None,
            "vision": False,
        }

    def test_web_search_and_vision_when_enabled(self, tmp_path) -> None:
        settings = _settings(tmp_path, web_search_enabled=True, openai_api_key="sk-test")
        components = build_components(settings, None, embedding_provider=MockEmbeddingProvider())

        assert isinstance(components["web_search"], DuckDuckGoSearchProvider)
        assert components["provider_registry"]["web_search"] == "duckduckgo"
        assert components["provider_registry"]["vision"] is True

    def test_image_dimension_must_match_text_embedder(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Image vectors are 64-dim"):
            build_components(
                _settings(tmp_path), {}, embedding_provider=MockEmbeddingProvider(dim=32)
            )

    def test_prebuilt_store_is_used(self, tmp_path) -> None:
        store = InMemoryVectorStore(expected_dimension=EMBEDDING_DIM)
        components = build_components(
            _settings(tmp_path), {}, vector_store=store, embedding_provider=MockEmbeddingProvider()
        )
        assert components["vector_store"] is store
