"""ChromaDB vector store provider adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for similarity search.  Fully local, no external
service required.

A Chroma collection holds one embedding per record, while a paragraph has
two vector fields.  Each logical collection ``name`` is therefore backed by
two Chroma collections: ``name`` for ``text_embedding`` and
``name__images`` for ``image_embedding`` (only image paragraphs are written
there).  Both carry the same id, document and metadata per paragraph.
"""

from __future__ import annotations

import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb: the env var, the
# PostHog switch and the client Settings flag are each honoured by different
# ChromaDB versions.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from src.interfaces.vector_store_provider import (
    IMAGE_EMBEDDING_FIELD,
    TEXT_EMBEDDING_FIELD,
    VECTOR_FIELDS,
    IVectorStoreProvider,
)
from src.models.rag import BlockKind, ListType, Paragraph, RetrievedParagraph, SourceType
from src.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_IMAGE_SUFFIX = "__images"


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    Groundwire always passes pre-computed embeddings, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its default
    ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "groundwire uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Paragraph store backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        Directory for ChromaDB's on-disk data.
    expected_dimension:
        Dimension every stored and queried vector must have.
    client:
        Pre-built Chroma client (tests pass ``chromadb.EphemeralClient()``).
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        expected_dimension: int = 1024,
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._expected_dimension = expected_dimension
        if client is None:
            client = chromadb.PersistentClient(
                path=persist_directory,
                settings=chromadb.config.Settings(anonymized_telemetry=False),
            )
        self._client = client
        self._collections: dict[str, dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def ensure_collection_exists(self, name: str) -> None:
        """Open (creating if needed) the text and image collections for *name*."""
        self._open(name)

    async def upsert(self, collection: str, paragraph: Paragraph) -> None:
        """Upsert *paragraph* into the text collection and, for images, the image one."""
        self._check_dimension(paragraph.text_embedding, TEXT_EMBEDDING_FIELD)
        if paragraph.image_embedding:
            self._check_dimension(paragraph.image_embedding, IMAGE_EMBEDDING_FIELD)

        collections = self._open(collection)
        document = paragraph.text
        metadata = self._paragraph_to_metadata(paragraph)
        try:
            collections[TEXT_EMBEDDING_FIELD].upsert(
                ids=[paragraph.key],
                embeddings=[list(paragraph.text_embedding)],
                documents=[document],
                metadatas=[metadata],
            )
            if paragraph.image_embedding:
                collections[IMAGE_EMBEDDING_FIELD].upsert(
                    ids=[paragraph.key],
                    embeddings=[list(paragraph.image_embedding)],
                    documents=[document],
                    metadatas=[metadata],
                )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("chromadb_upsert", collection=collection, key=paragraph.key)

    async def get(self, collection: str, key: str) -> Paragraph | None:
        """Return the paragraph stored under *key*, with both embeddings."""
        collections = self._open(collection)
        try:
            found = collections[TEXT_EMBEDDING_FIELD].get(
                ids=[key], include=["documents", "metadatas", "embeddings"]
            )
            if not found["ids"]:
                return None
            image_found = collections[IMAGE_EMBEDDING_FIELD].get(ids=[key], include=["embeddings"])
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB get failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        image_embedding = None
        if image_found["ids"]:
            image_embedding = _as_floats(_first(image_found.get("embeddings")))

        return self._metadata_to_paragraph(
            key=found["ids"][0],
            document=found["documents"][0] if found.get("documents") else "",
            meta=found["metadatas"][0] if found.get("metadatas") else {},
            text_embedding=_as_floats(_first(found.get("embeddings"))) or [],
            image_embedding=image_embedding,
        )

    async def search(
        self,
        collection: str,
        query_vector: list[float],
        top_k: int,
        vector_field: str = TEXT_EMBEDDING_FIELD,
    ) -> list[RetrievedParagraph]:
        """Cosine search over the collection backing *vector_field*."""
        if vector_field not in VECTOR_FIELDS:
            raise ValueError(f"Unknown vector field: {vector_field}")
        if top_k <= 0:
            return []
        self._check_dimension(query_vector, vector_field)

        target = self._open(collection)[vector_field]
        try:
            count = target.count()
            if count == 0:
                return []

            results = target.query(
                query_embeddings=[list(query_vector)],
                n_results=min(top_k, count),
                include=["documents", "metadatas", "distances", "embeddings"],
            )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [0.0] * len(ids)
        embeddings = results.get("embeddings")
        vectors = embeddings[0] if embeddings is not None and len(embeddings) else [None] * len(ids)

        hits: list[RetrievedParagraph] = []
        for key, document, meta, distance, vector in zip(
            ids, documents, metadatas, distances, vectors, strict=True
        ):
            stored_vector = _as_floats(vector) or []
            paragraph = self._metadata_to_paragraph(
                key=key,
                document=document or "",
                meta=meta or {},
                text_embedding=stored_vector if vector_field == TEXT_EMBEDDING_FIELD else [],
                image_embedding=stored_vector if vector_field == IMAGE_EMBEDDING_FIELD else None,
            )
            hits.append(RetrievedParagraph(paragraph=paragraph, score=1.0 - float(distance)))

        logger.debug(
            "chromadb_query",
            collection=collection,
            vector_field=vector_field,
            results_count=len(hits),
            top_score=hits[0].score if hits else 0.0,
        )
        return hits

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        try:
            self._client.heartbeat()
        except Exception:
            return False
        return True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _open(self, name: str) -> dict[str, Any]:
        cached = self._collections.get(name)
        if cached is not None:
            return cached
        try:
            opened = {
                TEXT_EMBEDDING_FIELD: self._get_or_create(name),
                IMAGE_EMBEDDING_FIELD: self._get_or_create(f"{name}{_IMAGE_SUFFIX}"),
            }
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB collection '{name}' unavailable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._collections[name] = opened
        logger.info("chromadb_collection_ready", collection=name)
        return opened

    def _get_or_create(self, name: str) -> Any:
        # Collections persisted with a different embedding function reject
        # ours with ValueError; reopen them with whatever was persisted.
        try:
            return self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return self._client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
            )

    def _check_dimension(self, vector: list[float] | None, field: str) -> None:
        size = len(vector) if vector is not None else 0
        if size != self._expected_dimension:
            raise RAGError(
                message=(
                    f"{field} has dimension {size}, "
                    f"store expects {self._expected_dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

    @staticmethod
    def _paragraph_to_metadata(paragraph: Paragraph) -> dict[str, str | int | float | bool]:
        """Flatten a paragraph into Chroma metadata, omitting ``None`` values."""
        raw: dict[str, Any] = {
            "document_uri": paragraph.document_uri,
            "paragraph_id": paragraph.paragraph_id,
            "order": paragraph.order,
            "section": paragraph.section,
            "source_type": paragraph.source_type.value,
            "content_hash": paragraph.content_hash,
            "published_at": paragraph.published_at,
            "block_kind": int(paragraph.block_kind),
            "heading_level": paragraph.heading_level,
            "list_type": int(paragraph.list_type) if paragraph.list_type is not None else None,
            "image_uri": paragraph.image_uri,
        }
        return {k: v for k, v in raw.items() if v is not None}

    @staticmethod
    def _metadata_to_paragraph(
        key: str,
        document: str,
        meta: dict[str, Any],
        text_embedding: list[float],
        image_embedding: list[float] | None,
    ) -> Paragraph:
        list_type = meta.get("list_type")
        return Paragraph(
            key=key,
            document_uri=str(meta.get("document_uri", "")),
            paragraph_id=str(meta.get("paragraph_id", "")),
            text=document,
            text_embedding=text_embedding,
            image_uri=meta.get("image_uri"),
            image_embedding=image_embedding,
            order=int(meta.get("order", 0)),
            section=meta.get("section"),
            source_type=SourceType(meta.get("source_type", SourceType.UNKNOWN.value)),
            content_hash=meta.get("content_hash"),
            published_at=meta.get("published_at"),
            block_kind=BlockKind(int(meta.get("block_kind", BlockKind.TEXT))),
            heading_level=meta.get("heading_level"),
            list_type=ListType(int(list_type)) if list_type is not None else None,
        )


def _first(values: Any) -> Any:
    """First element of a Chroma result column that may be a list or ndarray."""
    if values is None or len(values) == 0:
        return None
    return values[0]


def _as_floats(vector: Any) -> list[float] | None:
    if vector is None:
        return None
    return [float(x) for x in vector]
