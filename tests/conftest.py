"""Shared pytest fixtures for the groundwire test suite."""

from __future__ import annotations

import asyncio
import hashlib
import io
import struct
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest
import structlog
from PIL import Image

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.web_search_provider import IWebSearchProvider, SearchResult
from src.models.blocks import HeadingBlock, ImageBlock, ListBlock, TableBlock, TextBlock
from src.providers.image.hash_provider import HashImageEmbeddingProvider
from src.providers.image.placeholder_captioner import PlaceholderCaptioner
from src.providers.readers.registry import BlockReaderRegistry
from src.providers.storage.local_image_storage import LocalImageStorageProvider
from src.providers.vector_store.memory_provider import InMemoryVectorStore
from src.services.ingestion.block_mapper import DocumentBlockMapper
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.image_embedding_service import ImageEmbeddingService
from src.services.ingestion.ingestion_service import IngestionService
from src.services.ingestion.text_cleaner import TextCleaner
from src.services.retrieval.query_rewriter import QueryRewriter
from src.services.retrieval.reranker import Reranker
from src.services.retrieval.retrieval_service import RetrievalService
from src.utils.errors import RAGError

EMBEDDING_DIM = 64

SAMPLE_MARKDOWN = """\
# Quarterly Report

Revenue grew strongly in the third quarter.

Margins improved as well.

- Cloud revenue doubled
- Hardware sales were flat

Table: Key figures
| Metric | Value |
| --- | --- |
| Revenue | 120 |

![Revenue chart](chart.png)

## Outlook

Guidance remains unchanged for next year.
"""


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_test_logging() -> None:
    """Route structlog through stdlib logging so pytest captures it.

    Print-based loggers bind ``sys.stdout`` when first used, which under
    ``capsys`` is a buffer that is closed after the test.
    """
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True, scope="session")
def _test_logging() -> None:
    configure_test_logging()


# ---------------------------------------------------------------------------
# Deterministic embeddings
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic fixed-length vector by hashing *text*.

    Uses SHA-256 to hash the text, then unpacks bytes into floats and
    normalises to unit length.  Same text always produces the same vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    # Unpack as unsigned ints so no NaN/inf bit patterns appear.
    values = [v / 2**32 - 0.5 for v in struct.unpack(f"<{dim}I", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """Deterministic hash-vector embedding provider.

    Parameters
    ----------
    fail_on:
        Texts containing any of these substrings raise :class:`RAGError`.
    block_on:
        A text containing this substring waits on :attr:`release` after
        setting :attr:`blocked`; used to test cancellation mid-ingestion.
    """

    def __init__(
        self,
        dim: int = EMBEDDING_DIM,
        fail_on: tuple[str, ...] = (),
        block_on: str | None = None,
    ) -> None:
        self._dim = dim
        self._fail_on = fail_on
        self._block_on = block_on
        self.blocked = asyncio.Event()
        self.release = asyncio.Event()
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self._fail_on):
            raise RAGError(message=f"embedding refused for {text[:20]!r}", provider_name="mock")
        if self._block_on and self._block_on in text:
            self.blocked.set()
            await self.release.wait()
        return _hash_to_vector(text, self._dim)

    def get_dimension(self) -> int:
        return self._dim

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def make_png(seed: int, size: int = 64) -> bytes:
    """Return PNG bytes of a seeded noise image.

    Different seeds give perceptually distinct images; solid colours would
    all share one perceptual hash.
    """
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(size, size, 3), dtype=np.uint8)
    buf = io.BytesIO()
    Image.fromarray(pixels).save(buf, format="PNG")
    return buf.getvalue()


def make_near_duplicate(png_bytes: bytes) -> bytes:
    """Re-encode *png_bytes* with one pixel changed: new SHA-256, same look."""
    with Image.open(io.BytesIO(png_bytes)) as img:
        copy = img.convert("RGB")
    r, g, b = copy.getpixel((0, 0))
    copy.putpixel((0, 0), ((r + 1) % 256, g, b))
    buf = io.BytesIO()
    copy.save(buf, format="PNG")
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore(expected_dimension=EMBEDDING_DIM)


@pytest.fixture
def image_service() -> ImageEmbeddingService:
    return ImageEmbeddingService(
        embedders=[HashImageEmbeddingProvider(dimension=EMBEDDING_DIM)],
        captioners=[PlaceholderCaptioner()],
    )


@pytest.fixture
def mapper() -> DocumentBlockMapper:
    return DocumentBlockMapper(cleaner=TextCleaner(), chunker=TextChunker())


@pytest.fixture
def make_ingestion_service(vector_store, image_service, mapper, tmp_path):
    """Factory for an IngestionService over the in-memory store."""

    def _make(embedder: IEmbeddingProvider | None = None, **kwargs) -> IngestionService:
        return IngestionService(
            reader_registry=BlockReaderRegistry.default(),
            mapper=mapper,
            embedding_provider=embedder or MockEmbeddingProvider(),
            vector_store=vector_store,
            image_service=image_service,
            image_storage=LocalImageStorageProvider(root=tmp_path / "images"),
            **kwargs,
        )

    return _make


@pytest.fixture
def ingestion_service(make_ingestion_service, embedding_provider) -> IngestionService:
    return make_ingestion_service(embedding_provider)


@pytest.fixture
def mock_web_search() -> IWebSearchProvider:
    """Mock IWebSearchProvider returning two fixed results."""
    mock = MagicMock(spec=IWebSearchProvider)
    mock.get_provider_name.return_value = "mock-search"
    mock.is_available.return_value = True
    mock.search = AsyncMock(
        return_value=[
            SearchResult(
                name="Cloud revenue outlook for next year",
                snippet="Analysts expect cloud revenue guidance to remain unchanged next year.",
                link="https://news.example.com/2024/05/01/cloud-outlook",
            ),
            SearchResult(
                name="Hardware market recap",
                snippet="Hardware sales were flat across the sector.",
                link="https://news.example.com/hardware-recap",
            ),
        ]
    )
    return mock


@pytest.fixture
def retrieval_service(embedding_provider, vector_store, mock_web_search) -> RetrievalService:
    return RetrievalService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        rewriter=QueryRewriter(),
        reranker=Reranker(),
        web_search=mock_web_search,
    )


@pytest.fixture
def sample_markdown(tmp_path: Path) -> Path:
    """A Markdown report with heading, text, list, table and image blocks."""
    doc_dir = tmp_path / "docs"
    doc_dir.mkdir()
    (doc_dir / "chart.png").write_bytes(make_png(seed=1))
    path = doc_dir / "report.md"
    path.write_text(SAMPLE_MARKDOWN, encoding="utf-8")
    return path


@pytest.fixture
def sample_blocks() -> list:
    """One block of every kind, in reading order."""
    return [
        HeadingBlock(text="Introduction", level=1, order=0),
        TextBlock(text="First paragraph.\n\nSecond paragraph.", order=1),
        ListBlock(items=("alpha", "beta"), ordered=True, order=2),
        TableBlock.from_rows([["Name", "Score"], ["a", "1"]], order=3, caption="Scores"),
        ImageBlock(data=make_png(seed=7), description="A chart", order=4),
    ]
