"""Unit tests for image embedding/caption tiers and the tier selector."""

from __future__ import annotations

import numpy as np
import pytest
from unittest.mock import AsyncMock, MagicMock
from PIL import Image

from src.interfaces.image_embedding_provider import IImageCaptioner, IImageEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.providers.image.hash_provider import HashImageEmbeddingProvider, hash_to_vector
from src.providers.image.onnx_clip_provider import (
    OnnxClipImageEmbeddingProvider,
    fit_and_normalize,
    preprocess,
)
from src.providers.image.placeholder_captioner import PLACEHOLDER_CAPTION, PlaceholderCaptioner
from src.providers.image.vision_captioner import MAX_CAPTION_CHARS, VisionLLMCaptioner
from src.services.ingestion.image_embedding_service import ImageEmbeddingService
from src.utils.errors import LLMError, ProviderUnavailableError, RAGError
from src.utils.images import detect_media_type, is_decodable_image
from tests.conftest import make_png


def _mock_llm(reply: str = "A red bar chart", available: bool = True) -> MagicMock:
    llm = MagicMock(spec=ILLMProvider)
    llm.get_provider_name.return_value = "mock-llm"
    llm.is_available.return_value = available
    llm.supports_vision.return_value = True
    llm.vision_extract = AsyncMock(return_value=reply)
    return llm


# ======================================================================
# Hash tier
# ======================================================================


class TestHashImageEmbedding:
    def test_vector_is_unit_length_and_sized(self) -> None:
        vector = hash_to_vector(b"bytes", 128)
        assert len(vector) == 128
        assert np.linalg.norm(vector) == pytest.approx(1.0)

    def test_deterministic_and_distinct(self) -> None:
        assert hash_to_vector(b"a", 32) == hash_to_vector(b"a", 32)
        assert hash_to_vector(b"a", 32) != hash_to_vector(b"b", 32)

    @pytest.mark.asyncio
    async def test_accepts_undecodable_bytes(self) -> None:
        provider = HashImageEmbeddingProvider(dimension=16)
        assert provider.is_available() is True
        assert provider.can_process(b"not an image") is True
        assert len(await provider.embed(b"not an image")) == 16


# ======================================================================
# CLIP tier helpers
# ======================================================================


class TestClipHelpers:
    def test_preprocess_shape_and_dtype(self) -> None:
        tensor = preprocess(Image.new("RGB", (320, 200), (10, 20, 30)))
        assert tensor.shape == (1, 3, 224, 224)
        assert tensor.dtype == np.float32

    def test_preprocess_accepts_grayscale(self) -> None:
        assert preprocess(Image.new("L", (100, 300))).shape == (1, 3, 224, 224)

    def test_fit_tiles_short_vectors(self) -> None:
        fitted = fit_and_normalize(np.array([3.0, 4.0]), 4)
        assert len(fitted) == 4
        assert np.linalg.norm(fitted) == pytest.approx(1.0)

    def test_fit_cuts_long_vectors(self) -> None:
        fitted = fit_and_normalize(np.ones((1, 10)), 5)
        assert fitted == pytest.approx([1 / np.sqrt(5)] * 5)

    def test_missing_model_is_unavailable(self, tmp_path) -> None:
        provider = OnnxClipImageEmbeddingProvider(model_path=tmp_path / "missing.onnx", dimension=8)
        assert provider.is_available() is False
        assert provider.get_dimension() == 8

    def test_unloadable_model_is_unavailable(self, tmp_path) -> None:
        model = tmp_path / "clip.onnx"
        model.write_bytes(b"not an onnx model")
        provider = OnnxClipImageEmbeddingProvider(model_path=model, dimension=8)

        assert provider.is_available() is False
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_unloadable_model_falls_back_to_hash_tier(self, tmp_path) -> None:
        model = tmp_path / "clip.onnx"
        model.write_bytes(b"not an onnx model")
        image = make_png(seed=4)
        service = ImageEmbeddingService(
            [
                OnnxClipImageEmbeddingProvider(model_path=model, dimension=8),
                HashImageEmbeddingProvider(dimension=8),
            ],
            [PlaceholderCaptioner()],
        )

        assert await service.generate_embedding(image) == hash_to_vector(image, 8)

    def test_can_process_requires_decodable_image(self, tmp_path) -> None:
        provider = OnnxClipImageEmbeddingProvider(model_path=tmp_path / "missing.onnx")
        assert provider.can_process(make_png(seed=1)) is True
        assert provider.can_process(b"\x89PNG garbage") is False


# ======================================================================
# Captioners
# ======================================================================


class TestCaptioners:
    @pytest.mark.asyncio
    async def test_placeholder(self) -> None:
        captioner = PlaceholderCaptioner()
        assert await captioner.caption(b"anything") == PLACEHOLDER_CAPTION
        assert captioner.can_process(b"") is True

    @pytest.mark.asyncio
    async def test_vision_caption_is_trimmed(self) -> None:
        captioner = VisionLLMCaptioner(_mock_llm("  " + "x" * 100 + "  "))
        caption = await captioner.caption(make_png(seed=2))
        assert caption == "x" * MAX_CAPTION_CHARS

    def test_vision_availability_follows_llm(self) -> None:
        assert VisionLLMCaptioner(_mock_llm(available=False)).is_available() is False
        llm = _mock_llm()
        llm.supports_vision.return_value = False
        assert VisionLLMCaptioner(llm).is_available() is False
        assert VisionLLMCaptioner(_mock_llm()).get_provider_name() == "vision-mock-llm"


# ======================================================================
# Tier selection
# ======================================================================


def _tier(name: str, available: bool = True, can_process: bool = True, vector=None):
    tier = MagicMock(spec=IImageEmbeddingProvider)
    tier.get_provider_name.return_value = name
    tier.is_available.return_value = available
    tier.can_process.return_value = can_process
    tier.get_dimension.return_value = 4
    tier.embed = AsyncMock(return_value=vector or [1.0, 0.0, 0.0, 0.0])
    return tier


class TestImageEmbeddingService:
    @pytest.mark.asyncio
    async def test_uses_primary_when_it_accepts(self) -> None:
        primary = _tier("primary", vector=[0.0, 1.0, 0.0, 0.0])
        fallback = _tier("fallback")
        service = ImageEmbeddingService([primary, fallback], [PlaceholderCaptioner()])

        assert await service.generate_embedding(b"img") == [0.0, 1.0, 0.0, 0.0]
        fallback.embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_when_primary_unavailable(self) -> None:
        primary = _tier("primary", available=False)
        fallback = _tier("fallback")
        service = ImageEmbeddingService([primary, fallback], [PlaceholderCaptioner()])

        await service.generate_embedding(b"img")
        primary.embed.assert_not_awaited()
        fallback.embed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_falls_back_when_primary_cannot_process(self) -> None:
        primary = _tier("primary", can_process=False)
        fallback = _tier("fallback")
        service = ImageEmbeddingService([primary, fallback], [PlaceholderCaptioner()])

        await service.generate_embedding(b"img")
        fallback.embed.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_tier_hands_over_to_next(self) -> None:
        primary = _tier("primary")
        primary.embed = AsyncMock(side_effect=RAGError(message="inference failed"))
        fallback = _tier("fallback", vector=[0.0, 0.0, 1.0, 0.0])
        service = ImageEmbeddingService([primary, fallback], [PlaceholderCaptioner()])

        assert await service.generate_embedding(b"img") == [0.0, 0.0, 1.0, 0.0]

    @pytest.mark.asyncio
    async def test_every_tier_failing_raises(self) -> None:
        only = _tier("only")
        only.embed = AsyncMock(side_effect=RAGError(message="inference failed"))
        service = ImageEmbeddingService([only], [PlaceholderCaptioner()])
        with pytest.raises(ProviderUnavailableError):
            await service.generate_embedding(b"img")

    @pytest.mark.asyncio
    async def test_no_accepting_tier_raises(self) -> None:
        service = ImageEmbeddingService([_tier("only", available=False)], [PlaceholderCaptioner()])
        with pytest.raises(ProviderUnavailableError):
            await service.generate_embedding(b"img")

    @pytest.mark.asyncio
    async def test_caption_failure_degrades_to_placeholder(self) -> None:
        llm = _mock_llm()
        llm.vision_extract = AsyncMock(side_effect=LLMError(message="timeout"))
        service = ImageEmbeddingService(
            [HashImageEmbeddingProvider(dimension=4)],
            [VisionLLMCaptioner(llm), PlaceholderCaptioner()],
        )
        assert await service.generate_caption(make_png(seed=3)) == PLACEHOLDER_CAPTION

    @pytest.mark.asyncio
    async def test_undecodable_image_skips_vision_tier(self) -> None:
        llm = _mock_llm()
        service = ImageEmbeddingService(
            [HashImageEmbeddingProvider(dimension=4)],
            [VisionLLMCaptioner(llm), PlaceholderCaptioner()],
        )
        assert await service.generate_caption(b"not an image") == PLACEHOLDER_CAPTION
        llm.vision_extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_caption_becomes_placeholder(self) -> None:
        captioner = MagicMock(spec=IImageCaptioner)
        captioner.is_available.return_value = True
        captioner.can_process.return_value = True
        captioner.caption = AsyncMock(return_value="   ")
        service = ImageEmbeddingService([HashImageEmbeddingProvider(dimension=4)], [captioner])
        assert await service.generate_caption(b"img") == PLACEHOLDER_CAPTION

    def test_requires_tiers(self) -> None:
        with pytest.raises(ValueError):
            ImageEmbeddingService([], [PlaceholderCaptioner()])
        with pytest.raises(ValueError):
            ImageEmbeddingService([HashImageEmbeddingProvider()], [])


class TestImageUtils:
    def test_decodable(self) -> None:
        assert is_decodable_image(make_png(seed=9)) is True
        assert is_decodable_image(b"") is False
        assert is_decodable_image(b"plain text") is False

    @pytest.mark.parametrize(
        ("prefix", "expected"),
        [
            (b"\x89PNG\r\n\x1a\n", "image/png"),
            (b"GIF89a", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBP", "image/webp"),
            (b"\xff\xd8\xff", "image/jpeg"),
        ],
    )
    def test_detect_media_type(self, prefix: bytes, expected: str) -> None:
        assert detect_media_type(prefix + b"\x00" * 8) == expected
