"""YAML configuration loader with environment variable overrides.

Configuration is layered, later layers winning:

1. ``config/config.yaml``, static defaults checked into the repo
   (including the ``query_rewrite`` and ``reranker`` vocabulary tables).
2. ``.env``, local developer overrides.
3. Environment variables, set at deploy time.

:func:`load_config` reads the YAML first, then deep-merges the values that
:class:`~src.config.settings.Settings` resolved from the environment::

    base      = {"retrieval": {"top_k": 8}}
    overrides = {"retrieval": {"web_enabled": False}}
    result    = {"retrieval": {"top_k": 8, "web_enabled": False}}
"""

from pathlib import Path

import yaml

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
            the environment-derived values only.
        settings: Pre-built settings; a fresh :class:`Settings` is created
            when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the file exists but is not valid YAML or its
            top level is not a mapping.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    message=f"Invalid YAML in {config_path}: {exc}"
                ) from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(
                message=f"{config_path} must contain a mapping at the top level"
            )
    else:
        yaml_config = {}

    if settings is None:
        settings = Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "vector_store": {
            "backend": settings.vector_store_backend,
            "persist_dir": settings.chromadb_persist_dir,
            "collection": settings.rag_collection,
            "embedding_dimension": settings.embedding_dimension,
        },
        "embedding": {
            "backend": settings.embedding_backend,
            "model": settings.text_embedding_model,
        },
        "ingestion": {
            "chunk_max_tokens": settings.chunk_max_tokens,
            "chunk_overlap_tokens": settings.chunk_overlap_tokens,
            "concurrency": settings.ingestion_concurrency,
            "image_duplicate_threshold": settings.image_duplicate_threshold,
        },
        "retrieval": {
            "top_k": settings.retrieval_top_k,
            "rewrite_max_candidates": settings.query_rewrite_max_candidates,
            "web_enabled": settings.web_search_enabled,
            "web_timeout": settings.web_search_timeout,
            "web_top": settings.web_search_top,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
