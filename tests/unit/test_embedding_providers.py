"""Unit tests for the text embedding providers."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import numpy as np
import openai
import pytest

from src.config.settings import Settings
from src.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.embedding.sentence_transformer_embedding_provider import (
    SentenceTransformerEmbeddingProvider,
)
from src.utils.errors import RAGError


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _api_error() -> openai.APIError:
    request = httpx.Request("POST", "https://api.example.com/v1/embeddings")
    return openai.APIError("upstream failure", request=request, body=None)


def _embedding_response(vectors: list[list[float]]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage.total_tokens = 7
    return response


# ======================================================================
# fastembed
# ======================================================================


class TestFastEmbedProvider:
    def test_defaults(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        assert provider.get_dimension() == 1024
        assert provider.get_provider_name() == "fastembed_multilingual-e5-large"

    def test_known_model_dimension(self) -> None:
        assert FastEmbedEmbeddingProvider("BAAI/bge-small-en-v1.5").get_dimension() == 384

    @pytest.mark.asyncio
    async def test_embed_uses_loaded_model(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        model = MagicMock()
        model.embed.side_effect = lambda batch: iter(np.ones((len(batch), 3)) * 0.5)
        provider._model = model

        vectors = await provider.embed(["a", "b"])

        assert vectors == [[0.5, 0.5, 0.5], [0.5, 0.5, 0.5]]
        model.embed.assert_called_once_with(["a", "b"])

    @pytest.mark.asyncio
    async def test_empty_batch_skips_model(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        provider._model = MagicMock()
        assert await provider.embed([]) == []
        provider._model.embed.assert_not_called()

    @pytest.mark.asyncio
    async def test_model_errors_become_rag_errors(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        provider._model = MagicMock()
        provider._model.embed.side_effect = RuntimeError("onnx exploded")
        with pytest.raises(RAGError, match="onnx exploded"):
            await provider.embed_single("text")

    @pytest.mark.asyncio
    async def test_load_failure_becomes_rag_error(self) -> None:
        provider = FastEmbedEmbeddingProvider()
        with patch("fastembed.TextEmbedding", side_effect=OSError("no network")):
            with pytest.raises(RAGError, match="Could not load fastembed model"):
                await provider.embed(["text"])


# ======================================================================
# sentence-transformers
# ======================================================================


class TestSentenceTransformerProvider:
    def test_defaults(self) -> None:
        provider = SentenceTransformerEmbeddingProvider()
        assert provider.get_dimension() == 1024
        assert provider.get_provider_name() == (
            "sentence_transformer_multilingual-e5-large-instruct"
        )

    @pytest.mark.asyncio
    async def test_encode_normalises(self) -> None:
        provider = SentenceTransformerEmbeddingProvider("intfloat/e5-base-v2")
        model = MagicMock()
        model.encode.return_value = np.array([[0.6, 0.8]])
        provider._model = model

        assert await provider.embed_single("hello") == [0.6, 0.8]
        model.encode.assert_called_once_with(
            ["hello"], normalize_embeddings=True, show_progress_bar=False
        )
        assert provider.get_dimension() == 768

    @pytest.mark.asyncio
    async def test_blank_texts_are_substituted(self) -> None:
        provider = SentenceTransformerEmbeddingProvider()
        model = MagicMock()
        model.encode.side_effect = lambda batch, **_: np.zeros((len(batch), 2))
        provider._model = model

        await provider.embed(["", "  ", "text"])

        assert model.encode.call_args.args[0] == [" ", " ", "text"]

    @pytest.mark.asyncio
    async def test_large_inputs_are_batched(self) -> None:
        provider = SentenceTransformerEmbeddingProvider()
        model = MagicMock()
        model.encode.side_effect = lambda batch, **_: np.ones((len(batch), 2))
        provider._model = model

        vectors = await provider.embed([f"t{i}" for i in range(150)])

        assert len(vectors) == 150
        assert [len(c.args[0]) for c in model.encode.call_args_list] == [64, 64, 22]


# ======================================================================
# OpenAI-compatible
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_labels_and_availability(self) -> None:
        with patch("openai.AsyncOpenAI"):
            hosted = OpenAIEmbeddingProvider(_settings(openai_api_key="sk-test"))
            compatible = OpenAIEmbeddingProvider(
                _settings(openai_base_url="http://localhost:8001/v1")
            )
        assert hosted.get_provider_name() == "openai_embedding"
        assert hosted.is_available() is True
        assert hosted.get_dimension() == 1536
        assert compatible.get_provider_name() == "openai-compatible_embedding"
        assert compatible.is_available() is False

    def test_unknown_model_uses_configured_dimension(self) -> None:
        with patch("openai.AsyncOpenAI"):
            provider = OpenAIEmbeddingProvider(
                _settings(openai_embedding_model="custom-embedder", embedding_dimension=256)
            )
        assert provider.get_dimension() == 256

    @pytest.mark.asyncio
    async def test_embed_calls_client(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(
                return_value=_embedding_response([[0.1, 0.2], [0.3, 0.4]])
            )
            provider = OpenAIEmbeddingProvider(_settings(openai_api_key="sk-test"))

            vectors = await provider.embed(["a", "b"])

        assert vectors == [[0.1, 0.2], [0.3, 0.4]]
        client.embeddings.create.assert_awaited_once_with(
            input=["a", "b"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_long_inputs_are_truncated_for_small_window_models(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(return_value=_embedding_response([[1.0]]))
            provider = OpenAIEmbeddingProvider(
                _settings(openai_embedding_model="BAAI/bge-large-en-v1.5")
            )

            await provider.embed(["word " * 1000])

        sent = client.embeddings.create.await_args.kwargs["input"][0]
        assert len(sent) <= 1500
        assert not sent.endswith(" ")

    @pytest.mark.asyncio
    async def test_api_error_becomes_rag_error(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client_cls.return_value.embeddings.create = AsyncMock(side_effect=_api_error())
            provider = OpenAIEmbeddingProvider(_settings(openai_api_key="sk-test"))

            with pytest.raises(RAGError):
                await provider.embed_single("text")

    @pytest.mark.asyncio
    async def test_short_response_is_rejected(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client_cls.return_value.embeddings.create = AsyncMock(
                return_value=_embedding_response([[0.1, 0.2]])
            )
            provider = OpenAIEmbeddingProvider(_settings(openai_api_key="sk-test"))

            with pytest.raises(RAGError, match="Expected 2 embeddings"):
                await provider.embed(["a", "b"])
