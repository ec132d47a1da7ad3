"""Embedding providers and the gateway the pipeline talks to."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import numpy as np

from docsynapse.config import DEFAULT_LOCAL_MODEL, AppConfig
from docsynapse.embedding.client import create_openai_client
from docsynapse.errors import ProviderError

logger = logging.getLogger(__name__)

#: Character budget sent to the provider, a safe margin under the token limits.
DEFAULT_MAX_CHARS = 8000


class EmbeddingProvider(Protocol):
    def embed(self, text: str) -> Sequence[float]: ...


class OpenAIEmbeddingProvider:
    """Remote embeddings through the OpenAI SDK (OpenAI or Azure OpenAI).

    For Azure, ``model`` is the embedding deployment name.
    """

    def __init__(self, client: Any, model: str) -> None:
        self.client = client
        self.model = model

    def embed(self, text: str) -> Sequence[float]:
        response = self.client.embeddings.create(
            model=self.model,
            input=text,
            encoding_format="float",
        )
        return response.data[0].embedding


@dataclass(slots=True)
class LocalEmbeddingConfig:
    model_name: str = DEFAULT_LOCAL_MODEL
    normalize: bool = True
    device: str | None = None


class LocalEmbeddingProvider:
    """Thin wrapper around `SentenceTransformer` for offline embeddings."""

    def __init__(self, config: LocalEmbeddingConfig | None = None) -> None:
        from sentence_transformers import SentenceTransformer

        self.config = config or LocalEmbeddingConfig()
        self._model = SentenceTransformer(self.config.model_name, device=self.config.device)
        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info(
            "Loaded local embedding model %s (%d dimensions)",
            self.config.model_name,
            self.dimension,
        )

    def embed(self, text: str) -> Sequence[float]:
        vector = self._model.encode(
            text,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return vector.astype("float32", copy=False)


class EmbeddingGateway:
    """Truncates input, calls the provider and validates what comes back.

    Every failure surfaces as :class:`ProviderError`; callers decide whether to
    skip the unit of work or abort.
    """

    def __init__(self, provider: EmbeddingProvider, *, max_chars: int = DEFAULT_MAX_CHARS) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self.provider = provider
        self.max_chars = max_chars

    def embed(self, text: str) -> np.ndarray:
        """Return a float32 embedding for ``text``."""
        try:
            raw = self.provider.embed(text[: self.max_chars])
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"Embedding request failed: {exc}") from exc
        return self._validate(raw)

    @staticmethod
    def _validate(raw: Any) -> np.ndarray:
        try:
            vector = np.asarray(raw, dtype="float32")
        except (TypeError, ValueError) as exc:
            raise ProviderError(f"Malformed embedding: {exc}") from exc
        if vector.ndim != 1 or vector.size == 0:
            raise ProviderError(f"Malformed embedding with shape {vector.shape}")
        if not np.all(np.isfinite(vector)):
            raise ProviderError("Embedding contains non-finite values")
        return vector


def create_embedding_gateway(config: AppConfig) -> EmbeddingGateway:
    """Build the gateway for the provider selected in ``config``."""
    provider: EmbeddingProvider
    if config.embedding_provider == "local":
        provider = LocalEmbeddingProvider(LocalEmbeddingConfig(model_name=config.embedding_model))
    else:
        provider = OpenAIEmbeddingProvider(create_openai_client(config), config.embedding_model)
    return EmbeddingGateway(provider, max_chars=config.embed_max_chars)
