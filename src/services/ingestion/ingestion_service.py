"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **read -> map -> embed -> store**.

The :class:`IngestionService` coordinates its collaborators (block reader
registry, block mapper, image embedding service, image storage, text
embedding provider, vector store) without any of them knowing about each
other.  For one file the flow is:

    1. BlockReaderRegistry -- picks the reader for the file extension and
       parses the file into ordered blocks
    2. ImageEmbeddingService -- captions and embeds each non-duplicate image
    3. DocumentBlockMapper -- turns each block into keyed paragraphs,
       threading order and section through the document
    4. IEmbeddingProvider -- embeds every paragraph's text
    5. IVectorStoreProvider -- upserts every paragraph by key

Blocks are processed one at a time, so a cancelled ingestion stops before
the next block and keeps whatever was already upserted.  Within a block,
paragraphs are embedded and upserted concurrently under a semaphore; one
paragraph's failure is logged and counted, the rest continue.
"""

from __future__ import annotations

import asyncio
import hashlib
import io
import time
from pathlib import Path
from typing import TYPE_CHECKING

import imagehash
import structlog
from PIL import Image, UnidentifiedImageError

from src.models.blocks import Block, ImageBlock
from src.models.rag import ImageMetadata, IngestionResult, Paragraph, source_type_for
from src.providers.image.placeholder_captioner import PLACEHOLDER_CAPTION
from src.services.ingestion.block_mapper import DocumentBlockMapper
from src.utils.concurrency import throttled_gather
from src.utils.errors import DocumentReadError, GroundwireError, IngestionError

if TYPE_CHECKING:
    from src.interfaces.embedding_provider import IEmbeddingProvider
    from src.interfaces.image_storage_provider import IImageStorageProvider
    from src.interfaces.vector_store_provider import IVectorStoreProvider
    from src.providers.readers.registry import BlockReaderRegistry
    from src.services.ingestion.image_embedding_service import ImageEmbeddingService

logger = structlog.get_logger(logger_name=__name__)


def document_uri_for(file_path: str | Path) -> str:
    """Return the canonical URI used for keys: the absolute POSIX path."""
    return Path(file_path).expanduser().absolute().as_posix()


class _ImageDeduplicator:
    """Tracks images already seen in one document.

    Exact duplicates are matched on SHA-256.  With a *threshold*, near
    duplicates are also matched on the perceptual hash (Hamming distance at
    or below it); flat or same-layout images share a pHash, so this is off
    unless configured.  Bytes that Pillow cannot decode only take part in
    exact matching.
    """

    def __init__(self, threshold: int | None) -> None:
        self._threshold = threshold
        self._digests: set[str] = set()
        self._phashes: list[imagehash.ImageHash] = []

    def is_duplicate(self, data: bytes) -> bool:
        digest = hashlib.sha256(data).hexdigest()
        if digest in self._digests:
            return True

        phash = self._perceptual_hash(data) if self._threshold is not None else None
        if phash is not None and any(phash - seen <= self._threshold for seen in self._phashes):
            return True

        self._digests.add(digest)
        if phash is not None:
            self._phashes.append(phash)
        return False

    @staticmethod
    def _perceptual_hash(data: bytes) -> imagehash.ImageHash | None:
        try:
            with Image.open(io.BytesIO(data)) as img:
                return imagehash.phash(img)
        except (UnidentifiedImageError, OSError, ValueError):
            return None


class IngestionService:
    """Ingests documents into a vector-store collection.

    Parameters
    ----------
    reader_registry:
        Resolves a block reader from a file extension.
    mapper:
        Maps blocks to paragraphs.
    embedding_provider:
        Default text embedding provider.
    vector_store:
        Destination store.
    image_service:
        Caption and embedding tiers for image blocks.
    image_storage:
        Optional persistence for image bytes.  Without it image paragraphs
        have no ``image_uri``.
    concurrency:
        Maximum concurrent embed+upsert operations per block.
    image_duplicate_threshold:
        Maximum perceptual-hash Hamming distance treated as a duplicate.
        ``None`` (the default) skips exact byte duplicates only.
    """

    def __init__(
        self,
        reader_registry: BlockReaderRegistry,
        mapper: DocumentBlockMapper,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        image_service: ImageEmbeddingService,
        image_storage: IImageStorageProvider | None = None,
        concurrency: int = 4,
        image_duplicate_threshold: int | None = None,
    ) -> None:
        self._registry = reader_registry
        self._mapper = mapper
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._image_service = image_service
        self._image_storage = image_storage
        self._concurrency = max(1, concurrency)
        self._image_duplicate_threshold = image_duplicate_threshold

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest_file(
        self,
        collection: str,
        file_path: str | Path,
        embedding_provider: IEmbeddingProvider | None = None,
        published_at: str | None = None,
    ) -> IngestionResult:
        """Read, map, embed and upsert one document.

        Parameters
        ----------
        collection:
            Target collection; created if missing.
        file_path:
            Local path of the document.
        embedding_provider:
            Overrides the default text embedding provider for this call.
        published_at:
            ISO-8601 publication time stamped on every paragraph.

        Returns
        -------
        IngestionResult
            Counts for the run.

        Raises
        ------
        FileNotFoundError
            If *file_path* does not exist.
        DocumentReadError
            If no reader handles the extension or the file cannot be parsed.
        src.utils.errors.RAGError
            If the store is unreachable.
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Document not found: {file_path}")

        start = time.monotonic()
        document_uri = document_uri_for(path)
        provider = embedding_provider or self._embedding_provider

        await self._vector_store.ensure_collection_exists(collection)
        blocks = await self._read_blocks(path)

        semaphore = asyncio.Semaphore(self._concurrency)
        deduplicator = _ImageDeduplicator(self._image_duplicate_threshold)
        order = 0
        section: str | None = None
        processed = 0
        skipped = 0
        duplicates = 0

        for block in blocks:
            metadata: ImageMetadata | None = None
            if isinstance(block, ImageBlock) and block.data:
                if deduplicator.is_duplicate(block.data):
                    duplicates += 1
                    logger.debug("duplicate_image_skipped", document_uri=document_uri, order=block.order)
                    continue
                metadata = await self._prepare_image(block, path, order)

            mapped = self._mapper.map_block(
                block,
                document_uri,
                order,
                section,
                image_metadata=metadata,
                published_at=published_at,
            )
            order, section = mapped.next_order, mapped.section
            if not mapped.paragraphs:
                continue

            outcomes = await throttled_gather(
                [self._embed_and_upsert(collection, p, provider) for p in mapped.paragraphs],
                semaphore,
            )
            ok = sum(1 for outcome in outcomes if outcome is True)
            processed += ok
            skipped += len(outcomes) - ok

        result = IngestionResult(
            document_uri=document_uri,
            source_type=source_type_for(document_uri),
            blocks_read=len(blocks),
            paragraphs_processed=processed,
            paragraphs_skipped=skipped,
            duplicate_images=duplicates,
            ingestion_time=round(time.monotonic() - start, 3),
        )
        logger.info(
            "ingestion_complete",
            document_uri=document_uri,
            collection=collection,
            blocks=result.blocks_read,
            paragraphs=processed,
            skipped=skipped,
            duplicate_images=duplicates,
            time_s=result.ingestion_time,
        )
        return result

    async def ingest_directory(
        self,
        collection: str,
        dir_path: str | Path,
        embedding_provider: IEmbeddingProvider | None = None,
        published_at: str | None = None,
    ) -> list[IngestionResult]:
        """Ingest every supported file under *dir_path*, recursively.

        Files are processed one after another in sorted path order.  A file
        that fails fatally is logged and reported as a result with ``error``
        set; the walk continues.

        Raises
        ------
        IngestionError
            If *dir_path* is not a directory.
        """
        root = Path(dir_path)
        if not root.is_dir():
            logger.error("ingest_directory_not_found", dir_path=str(dir_path))
            raise IngestionError(message=f"Not a directory: {dir_path}")

        files = sorted(p for p in root.rglob("*") if p.is_file() and self._registry.supports(p))
        results: list[IngestionResult] = []
        for fp in files:
            try:
                result = await self.ingest_file(
                    collection, fp, embedding_provider=embedding_provider, published_at=published_at
                )
            except (GroundwireError, OSError) as exc:
                logger.error("ingest_file_failed", file=str(fp), error=str(exc))
                uri = document_uri_for(fp)
                result = IngestionResult(
                    document_uri=uri,
                    source_type=source_type_for(uri),
                    error=str(exc),
                )
            results.append(result)

        logger.info(
            "directory_ingestion_complete",
            dir_path=str(dir_path),
            files_processed=len(results),
            files_failed=sum(1 for r in results if r.error),
        )
        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _read_blocks(self, path: Path) -> list[Block]:
        reader = self._registry.resolve(path)
        try:
            blocks = await asyncio.to_thread(reader.read_blocks, path)
        except DocumentReadError:
            raise
        except Exception as exc:
            raise DocumentReadError(
                message=f"Failed to read {path.name}: {exc}",
                provider_name=type(reader).__name__,
            ) from exc
        # Stable: equal order hints keep reader order.
        return sorted(blocks, key=lambda b: b.order)

    async def _prepare_image(self, block: ImageBlock, path: Path, order: int) -> ImageMetadata:
        """Caption, embed and store one image block."""
        caption = await self._image_service.generate_caption(block.data)
        described = (block.caption or block.description or "").strip()
        if caption == PLACEHOLDER_CAPTION and described:
            caption = described

        try:
            embedding = await self._image_service.generate_embedding(block.data)
        except GroundwireError as exc:
            logger.warning("image_embedding_failed", file=path.name, order=order, error=str(exc))
            embedding = []

        stored_path: str | None = None
        if self._image_storage is not None:
            try:
                stored_path = await self._image_storage.save(block.data, f"{path.stem}_{order}")
            except OSError as exc:
                logger.warning("image_store_failed", file=path.name, order=order, error=str(exc))

        return ImageMetadata(caption=caption, stored_path=stored_path, image_embedding=embedding)

    async def _embed_and_upsert(
        self,
        collection: str,
        paragraph: Paragraph,
        provider: IEmbeddingProvider,
    ) -> bool:
        """Embed and store one paragraph; ``False`` when it was skipped."""
        try:
            vector = await provider.embed_single(paragraph.text)
            await self._vector_store.upsert(
                collection, paragraph.model_copy(update={"text_embedding": vector})
            )
        except Exception as exc:
            logger.warning(
                "paragraph_upsert_failed",
                key=paragraph.key,
                paragraph_id=paragraph.paragraph_id,
                error=str(exc),
            )
            return False
        return True
