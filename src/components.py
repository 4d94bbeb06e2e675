"""Component assembly shared by the FastAPI app and the CLI.

:func:`build_components` turns :class:`~src.config.settings.Settings` plus
the merged YAML config into ready-to-use services.  Provider selection:

* Text embeddings: ``EMBEDDING_BACKEND`` picks FastEmbed (default),
  sentence-transformers or an OpenAI-compatible endpoint.  The provider's
  dimension must equal ``EMBEDDING_DIMENSION``.
* Vector store: ChromaDB on disk, or the in-memory store when
  ``VECTOR_STORE_BACKEND=memory``.
* Image embeddings: CLIP via ONNX when the model file exists, else hash.
* Captions: the OpenAI-compatible vision model when ``OPENAI_API_KEY`` is
  set, else the placeholder.
* Web search: DuckDuckGo unless ``WEB_SEARCH_ENABLED=false``.

Heavy provider modules are imported inside the builders so that importing
this module stays cheap.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

EMBEDDING_BACKENDS = ("fastembed", "sentence_transformers", "openai")
VECTOR_STORE_BACKENDS = ("chromadb", "memory")


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Return the text embedding provider named by ``embedding_backend``.

    Raises
    ------
    ConfigurationError
        For an unknown backend, or when the provider's dimension differs
        from ``embedding_dimension``.
    """
    backend = app_settings.embedding_backend.strip().lower().replace("-", "_")
    model = app_settings.text_embedding_model or None

    provider: IEmbeddingProvider
    if backend == "fastembed":
        from src.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        provider = FastEmbedEmbeddingProvider(model_name=model)
    elif backend == "sentence_transformers":
        from src.providers.embedding.sentence_transformer_embedding_provider import (
            SentenceTransformerEmbeddingProvider,
        )

        provider = SentenceTransformerEmbeddingProvider(model_name=model)
    elif backend == "openai":
        from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(settings=app_settings)
    else:
        raise ConfigurationError(
            message=(
                f"Unknown EMBEDDING_BACKEND '{app_settings.embedding_backend}'; "
                f"expected one of {', '.join(EMBEDDING_BACKENDS)}"
            )
        )

    if provider.get_dimension() != app_settings.embedding_dimension:
        raise ConfigurationError(
            message=(
                f"{provider.get_provider_name()} produces {provider.get_dimension()}-dim "
                f"vectors but EMBEDDING_DIMENSION is {app_settings.embedding_dimension}"
            ),
            provider_name=provider.get_provider_name(),
        )
    return provider


def build_vector_store(app_settings: Settings) -> IVectorStoreProvider:
    """Return the vector store named by ``vector_store_backend``."""
    backend = app_settings.vector_store_backend.strip().lower()
    if backend == "chromadb":
        from src.providers.vector_store.chromadb_provider import ChromaDBProvider

        return ChromaDBProvider(
            persist_directory=app_settings.chromadb_persist_dir,
            expected_dimension=app_settings.embedding_dimension,
        )
    if backend == "memory":
        from src.providers.vector_store.memory_provider import InMemoryVectorStore

        return InMemoryVectorStore(expected_dimension=app_settings.embedding_dimension)
    raise ConfigurationError(
        message=(
            f"Unknown VECTOR_STORE_BACKEND '{app_settings.vector_store_backend}'; "
            f"expected one of {', '.join(VECTOR_STORE_BACKENDS)}"
        )
    )


def build_image_service(app_settings: Settings):  # noqa: ANN201
    """Return an ImageEmbeddingService with every configured tier."""
    from src.providers.image.hash_provider import HashImageEmbeddingProvider
    from src.providers.image.onnx_clip_provider import OnnxClipImageEmbeddingProvider
    from src.providers.image.placeholder_captioner import PlaceholderCaptioner
    from src.services.ingestion.image_embedding_service import ImageEmbeddingService

    dimension = app_settings.embedding_dimension
    embedders = [
        OnnxClipImageEmbeddingProvider(model_path=app_settings.clip_image_onnx, dimension=dimension),
        HashImageEmbeddingProvider(dimension=dimension),
    ]

    captioners = []
    if app_settings.vision_enabled():
        from src.providers.image.vision_captioner import VisionLLMCaptioner
        from src.providers.llm.openai_provider import OpenAILLMProvider

        captioners.append(VisionLLMCaptioner(OpenAILLMProvider(settings=app_settings)))
    captioners.append(PlaceholderCaptioner())

    return ImageEmbeddingService(embedders=embedders, captioners=captioners)


def build_components(
    app_settings: Settings,
    config: dict[str, Any] | None = None,
    vector_store: IVectorStoreProvider | None = None,
    embedding_provider: IEmbeddingProvider | None = None,
) -> dict[str, Any]:
    """Construct every provider and service.

    Parameters
    ----------
    app_settings:
        Resolved settings.
    config:
        Merged YAML config from :func:`~src.config.loader.load_config`;
        only the ``query_rewrite`` and ``reranker`` sections are read here.
    vector_store, embedding_provider:
        Pre-built collaborators, used instead of building from settings.

    Returns
    -------
    dict
        Flat mapping of named components, stored on ``app.state`` by the
        API and used directly by the CLI.
    """
    from src.providers.readers.registry import BlockReaderRegistry
    from src.providers.storage.local_image_storage import LocalImageStorageProvider
    from src.services.ingestion.block_mapper import DocumentBlockMapper
    from src.services.ingestion.chunker import TextChunker
    from src.services.ingestion.ingestion_service import IngestionService
    from src.services.ingestion.text_cleaner import TextCleaner
    from src.services.retrieval.query_rewriter import QueryRewriter, QueryRewriteRules
    from src.services.retrieval.reranker import Reranker, RerankerConfig
    from src.services.retrieval.retrieval_service import RetrievalService

    config = config or {}
    embedder = embedding_provider or build_embedding_provider(app_settings)
    store = vector_store or build_vector_store(app_settings)
    image_service = build_image_service(app_settings)
    if image_service.get_dimension() != embedder.get_dimension():
        raise ConfigurationError(
            message=(
                f"Image vectors are {image_service.get_dimension()}-dim but "
                f"{embedder.get_provider_name()} produces {embedder.get_dimension()}-dim text vectors"
            ),
            provider_name=embedder.get_provider_name(),
        )

    web_search = None
    if app_settings.web_search_enabled:
        from src.providers.search.duckduckgo_provider import DuckDuckGoSearchProvider

        web_search = DuckDuckGoSearchProvider()

    mapper = DocumentBlockMapper(
        cleaner=TextCleaner(),
        chunker=TextChunker(
            max_tokens=app_settings.chunk_max_tokens,
            overlap_tokens=app_settings.chunk_overlap_tokens,
        ),
    )
    ingestion_service = IngestionService(
        reader_registry=BlockReaderRegistry.default(),
        mapper=mapper,
        embedding_provider=embedder,
        vector_store=store,
        image_service=image_service,
        image_storage=LocalImageStorageProvider(root=app_settings.image_storage_dir),
        concurrency=app_settings.ingestion_concurrency,
        image_duplicate_threshold=app_settings.image_duplicate_threshold,
    )
    retrieval_service = RetrievalService(
        embedding_provider=embedder,
        vector_store=store,
        rewriter=QueryRewriter(QueryRewriteRules.from_config(config.get("query_rewrite"))),
        reranker=Reranker(RerankerConfig.from_config(config.get("reranker"))),
        web_search=web_search,
        rewrite_max_candidates=app_settings.query_rewrite_max_candidates,
        web_top=app_settings.web_search_top,
        web_timeout=app_settings.web_search_timeout,
    )

    provider_registry: dict[str, Any] = {
        "embedding": embedder.get_provider_name(),
        "vector_store": store.get_provider_name(),
        "web_search": web_search.get_provider_name() if web_search else None,
        "vision": app_settings.vision_enabled(),
    }

    logger.info(
        "components_built",
        embedding=provider_registry["embedding"],
        vector_store=provider_registry["vector_store"],
        web_search=provider_registry["web_search"],
        vision=provider_registry["vision"],
    )
    return {
        "settings": app_settings,
        "embedding_provider": embedder,
        "vector_store": store,
        "web_search": web_search,
        "image_service": image_service,
        "ingestion_service": ingestion_service,
        "retrieval_service": retrieval_service,
        "provider_registry": provider_registry,
        "default_collection": app_settings.rag_collection,
    }
