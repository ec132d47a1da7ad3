"""Semantic search interface."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np

from docsynapse.embedding.encoder import EmbeddingGateway
from docsynapse.errors import DimensionMismatchError, EmptyIndexError, InvalidQueryError
from docsynapse.index.storage import VectorStore
from docsynapse.models import ChunkRecord, RetrievalHit
from docsynapse.utils.text import truncate

LOGGER = logging.getLogger(__name__)

MIN_SCORE = 0.25
MAX_RESULTS = 12
PREVIEW_CHARS = 150


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against each row; zero norms score 0."""
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros(len(matrix), dtype="float64")
    nonzero = norms > 0
    scores[nonzero] = dots[nonzero] / norms[nonzero]
    return np.clip(scores, -1.0, 1.0)


class Searcher:
    """High-level API to query the vector store."""

    def __init__(
        self,
        embedder: EmbeddingGateway,
        store: VectorStore,
        *,
        min_score: float = MIN_SCORE,
        max_results: int = MAX_RESULTS,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.min_score = min_score
        self.max_results = max_results

    def retrieve(self, query: str, *, limit: int | None = None) -> List[Tuple[ChunkRecord, float]]:
        """Best chunk per source file with its score, highest first."""
        if not query or not query.strip():
            raise InvalidQueryError("Query must not be empty")
        records: Sequence[ChunkRecord] = self.store.records
        if not records:
            raise EmptyIndexError("The index is empty; index some directories first")

        query_vector = self.embedder.embed(query.strip()).astype("float64")
        dimension = records[0].dimension
        if query_vector.shape[0] != dimension:
            raise DimensionMismatchError(dimension, int(query_vector.shape[0]))

        matrix = np.asarray([record.embedding for record in records], dtype="float64")
        scores = cosine_scores(query_vector, matrix)
        order = np.argsort(-scores, kind="stable")

        limit = self.max_results if limit is None else limit
        if limit <= 0:
            return []
        seen: set[str] = set()
        ranked: List[Tuple[ChunkRecord, float]] = []
        for idx in order:
            score = float(scores[idx])
            if score <= self.min_score:
                break
            record = records[idx]
            if record.source_path in seen:
                continue
            seen.add(record.source_path)
            ranked.append((record, score))
            if len(ranked) >= limit:
                break

        LOGGER.debug("Query matched %d files out of %d chunks", len(ranked), len(records))
        return ranked

    def search(self, query: str) -> List[RetrievalHit]:
        return [
            RetrievalHit(
                source_name=record.source_name,
                source_path=record.source_path,
                score=score,
                preview_text=truncate(record.preview_text, PREVIEW_CHARS),
            )
            for record, score in self.retrieve(query)
        ]
