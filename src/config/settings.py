"""Application settings loaded from environment variables via pydantic-settings.

Values are resolved in priority order:

1. Environment variables (``CHROMADB_PERSIST_DIR=/data/chroma``), which
   always win.
2. The ``.env`` file in the project root, for local development.
3. The defaults declared on :class:`Settings`.

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``; pydantic-settings
uppercases and matches automatically.  The ``.env`` file is never committed;
``.env.example`` lists every variable.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Groundwire runtime settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Vector store ===
    # "chromadb" (persistent, default) or "memory" (process-local, for tests).
    vector_store_backend: str = "chromadb"
    chromadb_persist_dir: str = "./data/chromadb"
    rag_collection: str = "groundwire_kb"

    # === Text embeddings ===
    # "fastembed" (local ONNX, default), "sentence_transformers" or "openai".
    embedding_backend: str = "fastembed"
    text_embedding_model: str = ""  # empty = backend default
    embedding_dimension: int = 1024

    # === Images ===
    clip_image_onnx: str = "models/clip-image.onnx"
    image_storage_dir: str = "./data/images"
    image_duplicate_threshold: int | None = None  # pHash distance; None = exact duplicates only

    # === Ingestion ===
    chunk_max_tokens: int = 400
    chunk_overlap_tokens: int = 40
    ingestion_concurrency: int = 4

    # === Retrieval ===
    retrieval_top_k: int = 8
    query_rewrite_max_candidates: int = 3
    web_search_enabled: bool = True
    web_search_timeout: float = 8.0
    web_search_top: int = 5

    # === OpenAI-compatible vision / embeddings ===
    # Empty key = captioning falls back to the placeholder tier.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_vision_model: str = ""
    openai_embedding_model: str = ""

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    config_path: str = "config/config.yaml"

    def vision_enabled(self) -> bool:
        """Return True when an OpenAI-compatible vision model can be used."""
        return bool(self.openai_api_key)
