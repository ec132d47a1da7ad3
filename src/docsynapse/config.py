"""Application configuration defaults and environment loading."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping

from dotenv import load_dotenv

ProviderName = Literal["azure", "openai", "local"]

DEFAULT_LOCAL_MODEL = "sentence-transformers/all-mpnet-base-v2"
DEFAULT_OPENAI_MODEL = "text-embedding-3-small"


def _get_default_index_path() -> Path:
    """Get the default index path based on execution context."""
    user_index = Path.home() / "Documents" / "DocSynapse" / "index.json"

    if getattr(sys, "frozen", False):
        return user_index

    # When running from source, prefer local data/ if it exists
    local_index = Path("data/index.json")
    if local_index.exists():
        return local_index

    return user_index


@dataclass(slots=True)
class AppConfig:
    index_path: Path | None = None
    embedding_provider: ProviderName = "azure"
    embedding_model: str = DEFAULT_OPENAI_MODEL
    chat_model: str = "gpt-4o"
    azure_endpoint: str | None = None
    azure_api_key: str | None = None
    azure_api_version: str = "2024-02-15-preview"
    openai_api_key: str | None = None
    request_timeout: float = 30.0
    max_retries: int = 2
    chunk_chars: int = 1000
    overlap: int = 200
    embed_max_chars: int = 8000
    min_text_chars: int = 50
    max_chunks_per_file: int = 10
    progress_every: int = 5

    def __post_init__(self) -> None:
        if self.index_path is None:
            self.index_path = _get_default_index_path()
        if self.embedding_provider not in ("azure", "openai", "local"):
            raise ValueError(f"Unknown embedding provider: {self.embedding_provider!r}")

    def resolve_index_path(self, base_dir: Path | None = None) -> Path:
        if self.index_path is None:
            self.index_path = _get_default_index_path()
        if Path(self.index_path).is_absolute() or base_dir is None:
            return Path(self.index_path)
        return base_dir / self.index_path

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from environment variables (and a ``.env`` file)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        provider = environ.get("DOCSYNAPSE_EMBEDDING_PROVIDER", "azure").strip().lower()
        default_model = DEFAULT_LOCAL_MODEL if provider == "local" else DEFAULT_OPENAI_MODEL
        index_path = environ.get("DOCSYNAPSE_INDEX_PATH")

        return cls(
            index_path=Path(index_path) if index_path else None,
            embedding_provider=provider,  # type: ignore[arg-type]
            embedding_model=(
                environ.get("AZURE_OPENAI_EMBEDDING_DEPLOYMENT")
                if provider == "azure" and environ.get("AZURE_OPENAI_EMBEDDING_DEPLOYMENT")
                else environ.get("DOCSYNAPSE_EMBEDDING_MODEL", default_model)
            ),
            chat_model=environ.get("AZURE_OPENAI_CHAT_DEPLOYMENT", "gpt-4o"),
            azure_endpoint=environ.get("AZURE_OPENAI_ENDPOINT"),
            azure_api_key=environ.get("AZURE_OPENAI_KEY"),
            azure_api_version=environ.get(
                "AZURE_OPENAI_CHAT_API_VERSION", "2024-02-15-preview"
            ),
            openai_api_key=environ.get("OPENAI_API_KEY"),
            request_timeout=float(environ.get("DOCSYNAPSE_REQUEST_TIMEOUT", "30")),
        )
