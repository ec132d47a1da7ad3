"""Tests for the embedding gateway and providers."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from docsynapse.config import AppConfig
from docsynapse.embedding.client import create_openai_client, use_azure
from docsynapse.embedding.encoder import (
    EmbeddingGateway,
    LocalEmbeddingProvider,
    OpenAIEmbeddingProvider,
    create_embedding_gateway,
)
from docsynapse.errors import ProviderError


class TestEmbeddingGateway:
    """Gateway truncation, delegation and validation."""

    def test_returns_float32_vector(self) -> None:
        provider = MagicMock()
        provider.embed.return_value = [0.1, 0.2, 0.3]

        vector = EmbeddingGateway(provider).embed("hello")

        assert vector.dtype == np.float32
        np.testing.assert_allclose(vector, [0.1, 0.2, 0.3], rtol=1e-6)
        provider.embed.assert_called_once_with("hello")

    def test_truncates_to_prefix(self) -> None:
        provider = MagicMock()
        provider.embed.return_value = [1.0]

        EmbeddingGateway(provider, max_chars=5).embed("abcdefghij")

        provider.embed.assert_called_once_with("abcde")

    def test_wraps_provider_exceptions(self) -> None:
        provider = MagicMock()
        cause = TimeoutError("request timed out")
        provider.embed.side_effect = cause

        with pytest.raises(ProviderError) as excinfo:
            EmbeddingGateway(provider).embed("text")

        assert excinfo.value.__cause__ is cause

    def test_provider_error_passes_through(self) -> None:
        provider = MagicMock()
        error = ProviderError("quota exceeded")
        provider.embed.side_effect = error

        with pytest.raises(ProviderError) as excinfo:
            EmbeddingGateway(provider).embed("text")

        assert excinfo.value is error

    @pytest.mark.parametrize(
        "payload",
        [[], [[0.1, 0.2], [0.3, 0.4]], ["a", "b"], [float("nan"), 1.0], None, 3.0],
    )
    def test_malformed_output(self, payload: object) -> None:
        provider = MagicMock()
        provider.embed.return_value = payload

        with pytest.raises(ProviderError):
            EmbeddingGateway(provider).embed("text")

    def test_rejects_non_positive_max_chars(self) -> None:
        with pytest.raises(ValueError):
            EmbeddingGateway(MagicMock(), max_chars=0)


class TestOpenAIEmbeddingProvider:
    def test_calls_embeddings_api(self) -> None:
        client = MagicMock()
        client.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(embedding=[0.5, 0.25])]
        )

        vector = OpenAIEmbeddingProvider(client, "text-embedding-3-small").embed("hi")

        assert vector == [0.5, 0.25]
        client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input="hi", encoding_format="float"
        )


class TestLocalEmbeddingProvider:
    @patch("sentence_transformers.SentenceTransformer")
    def test_encodes_with_sentence_transformer(self, mock_st: MagicMock) -> None:
        model = MagicMock()
        model.get_sentence_embedding_dimension.return_value = 3
        model.encode.return_value = np.array([1.0, 2.0, 3.0], dtype="float64")
        mock_st.return_value = model

        provider = LocalEmbeddingProvider()
        vector = provider.embed("text")

        assert provider.dimension == 3
        assert vector.dtype == np.float32
        assert model.encode.call_args.kwargs["normalize_embeddings"] is True


class TestClientFactory:
    def test_use_azure(self) -> None:
        assert use_azure(AppConfig(embedding_provider="azure"))
        assert not use_azure(AppConfig(embedding_provider="openai"))
        assert use_azure(AppConfig(embedding_provider="local", azure_endpoint="https://x"))
        assert not use_azure(AppConfig(embedding_provider="local"))

    def test_azure_requires_credentials(self) -> None:
        with pytest.raises(ProviderError, match="AZURE_OPENAI_ENDPOINT"):
            create_openai_client(AppConfig(embedding_provider="azure"))

    def test_openai_requires_key(self) -> None:
        with pytest.raises(ProviderError, match="OPENAI_API_KEY"):
            create_openai_client(AppConfig(embedding_provider="openai"))

    @patch("docsynapse.embedding.client.AzureOpenAI")
    def test_azure_client_gets_timeout(self, mock_azure: MagicMock) -> None:
        config = AppConfig(
            embedding_provider="azure",
            azure_endpoint="https://example.openai.azure.com",
            azure_api_key="key",
            request_timeout=12.5,
        )

        create_openai_client(config)

        kwargs = mock_azure.call_args.kwargs
        assert kwargs["timeout"] == 12.5
        assert kwargs["azure_endpoint"] == "https://example.openai.azure.com"

    @patch("docsynapse.embedding.encoder.create_openai_client")
    def test_create_gateway_remote(self, mock_factory: MagicMock) -> None:
        config = AppConfig(embedding_provider="openai", openai_api_key="k", embed_max_chars=123)

        gateway = create_embedding_gateway(config)

        assert isinstance(gateway.provider, OpenAIEmbeddingProvider)
        assert gateway.max_chars == 123
        mock_factory.assert_called_once_with(config)
