"""Unit tests for settings, YAML config loading and logging setup."""

from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from src.config.loader import load_config
from src.config.settings import Settings
from src.services.retrieval.query_rewriter import QueryRewriteRules
from src.services.retrieval.reranker import RerankerConfig
from src.utils.errors import ConfigurationError
from src.utils.logging import configure_logging, get_logger
from tests.conftest import configure_test_logging

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "config.yaml"


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        settings = _settings()
        assert settings.rag_collection == "groundwire_kb"
        assert settings.embedding_dimension == 1024
        assert settings.vision_enabled() is False

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("RETRIEVAL_TOP_K", "3")
        monkeypatch.setenv("WEB_SEARCH_ENABLED", "false")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        settings = _settings()
        assert settings.retrieval_top_k == 3
        assert settings.web_search_enabled is False
        assert settings.vision_enabled() is True


class TestLoadConfig:
    def test_repository_config_loads(self) -> None:
        config = load_config(str(REPO_CONFIG), settings=_settings())

        assert config["vector_store"]["collection"] == "groundwire_kb"
        rules = QueryRewriteRules.from_config(config["query_rewrite"])
        assert rules.time_frames[0] == "最新"
        reranker = RerankerConfig.from_config(config["reranker"])
        assert reranker.relevance_weight == pytest.approx(0.55)

    def test_settings_override_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("retrieval:\n  top_k: 8\n  extra: kept\n", encoding="utf-8")

        config = load_config(str(path), settings=_settings(retrieval_top_k=2))

        assert config["retrieval"]["top_k"] == 2
        assert config["retrieval"]["extra"] == "kept"

    def test_missing_file_yields_settings_only(self, tmp_path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=_settings())
        assert set(config) == {
            "app", "vector_store", "embedding", "ingestion", "retrieval", "logging",
        }

    def test_invalid_yaml_raises(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("retrieval: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(str(path), settings=_settings())

    def test_non_mapping_raises(self, tmp_path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(str(path), settings=_settings())


class TestLogging:
    def test_configure_and_get_logger(self) -> None:
        try:
            configure_logging("DEBUG", json_output=True)
            assert structlog.is_configured()
            assert structlog.get_config()["cache_logger_on_first_use"] is True
            assert get_logger("tests.config") is not None
        finally:
            configure_test_logging()
