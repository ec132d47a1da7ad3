"""Process-wide service wiring: one store, one indexer, one searcher."""

from __future__ import annotations

import logging
import threading
from functools import cached_property
from pathlib import Path

from docsynapse.config import AppConfig
from docsynapse.embedding.chat import ChatGateway
from docsynapse.embedding.client import create_openai_client
from docsynapse.embedding.encoder import EmbeddingGateway, create_embedding_gateway
from docsynapse.index.indexer import Indexer
from docsynapse.index.keyword import KeywordScanner
from docsynapse.index.search import Searcher
from docsynapse.index.storage import VectorStore
from docsynapse.insights import Insights

LOGGER = logging.getLogger(__name__)


class AppServices:
    """Owns the vector store and the components sharing it.

    The store is loaded eagerly so a corrupt index fails at start-up; provider
    clients are created on first use so status queries work without credentials.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        store: VectorStore | None = None,
        embedder: EmbeddingGateway | None = None,
        chat: ChatGateway | None = None,
        base_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.index_path = config.resolve_index_path(base_dir)
        self.store = store if store is not None else VectorStore.load(self.index_path)
        self._indexer: Indexer | None = None
        self._indexer_lock = threading.Lock()
        if embedder is not None:
            self.__dict__["embedder"] = embedder
        if chat is not None:
            self.__dict__["chat"] = chat

    @cached_property
    def embedder(self) -> EmbeddingGateway:
        return create_embedding_gateway(self.config)

    @cached_property
    def chat(self) -> ChatGateway:
        return ChatGateway(create_openai_client(self.config), self.config.chat_model)

    @property
    def indexer(self) -> Indexer:
        # a single Indexer instance carries the run lock
        with self._indexer_lock:
            if self._indexer is None:
                self._indexer = Indexer(
                    self.embedder,
                    self.store,
                    chunk_chars=self.config.chunk_chars,
                    overlap=self.config.overlap,
                    min_text_chars=self.config.min_text_chars,
                    max_chunks_per_file=self.config.max_chunks_per_file,
                    progress_every=self.config.progress_every,
                )
        return self._indexer

    @cached_property
    def searcher(self) -> Searcher:
        return Searcher(self.embedder, self.store)

    @cached_property
    def keyword_scanner(self) -> KeywordScanner:
        return KeywordScanner(progress_every=self.config.progress_every)

    @cached_property
    def insights(self) -> Insights:
        return Insights(self.chat, self.searcher)
