"""Tests for semantic search interface."""

from __future__ import annotations

import math
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from conftest import TableProvider, make_record
from docsynapse.embedding.encoder import EmbeddingGateway
from docsynapse.errors import DimensionMismatchError, EmptyIndexError, InvalidQueryError
from docsynapse.index.search import MAX_RESULTS, Searcher, cosine_scores
from docsynapse.index.storage import VectorStore
from docsynapse.models import RetrievalHit


def _angle_vector(score: float) -> list[float]:
    """Unit vector whose cosine with [1, 0] equals ``score``."""
    return [score, math.sqrt(1 - score * score)]


def _searcher(tmp_path: Path, records, query_vector) -> Searcher:
    store = VectorStore(tmp_path / "index.json", records)
    return Searcher(EmbeddingGateway(TableProvider({"query": query_vector})), store)


class TestCosineScores:
    def test_matches_formula(self) -> None:
        matrix = np.array([[1.0, 0.0], [0.0, 2.0], [1.0, 1.0]])

        scores = cosine_scores(np.array([1.0, 0.0]), matrix)

        np.testing.assert_allclose(scores, [1.0, 0.0, 1 / math.sqrt(2)])

    def test_zero_norm_scores_zero(self) -> None:
        matrix = np.array([[0.0, 0.0], [1.0, 0.0]])

        assert list(cosine_scores(np.array([1.0, 0.0]), matrix)) == [0.0, 1.0]
        assert list(cosine_scores(np.zeros(2), matrix)) == [0.0, 0.0]


class TestSearcher:
    """Test Searcher ranking, filtering and dedup."""

    def test_two_files_ranked(self, tmp_path: Path) -> None:
        """Best chunk of a.txt (0.9) ranks before best chunk of b.txt (0.4)."""
        records = [
            make_record("docs/a.txt", _angle_vector(0.9), "a-best"),
            make_record("docs/a.txt", _angle_vector(0.1), "a-weak"),
            make_record("docs/b.txt", _angle_vector(0.4), "b-best"),
            make_record("docs/b.txt", _angle_vector(-0.3), "b-weak"),
        ]
        searcher = _searcher(tmp_path, records, [1.0, 0.0])

        hits = searcher.search("query")

        assert [h.source_path for h in hits] == ["docs/a.txt", "docs/b.txt"]
        assert [h.preview_text for h in hits] == ["a-best", "b-best"]
        assert hits[0].score == pytest.approx(0.9, abs=1e-5)
        assert hits[1].score == pytest.approx(0.4, abs=1e-5)
        assert hits[0].source_name == "a.txt"

    def test_dedup_keeps_highest_scoring_chunk(self, tmp_path: Path) -> None:
        records = [
            make_record("a.txt", _angle_vector(0.5), "mid"),
            make_record("a.txt", _angle_vector(0.95), "top"),
            make_record("a.txt", _angle_vector(0.7), "high"),
        ]

        hits = _searcher(tmp_path, records, [1.0, 0.0]).search("query")

        assert len(hits) == 1
        assert hits[0].preview_text == "top"

    def test_relevance_floor(self, tmp_path: Path) -> None:
        records = [
            make_record("low.txt", _angle_vector(0.2)),
            make_record("edge.txt", _angle_vector(0.5)),
            make_record("ok.txt", _angle_vector(0.26)),
        ]
        searcher = _searcher(tmp_path, records, [1.0, 0.0])

        with patch(
            "docsynapse.index.search.cosine_scores", return_value=np.array([0.2, 0.25, 0.26])
        ):
            hits = searcher.search("query")

        assert [h.source_path for h in hits] == ["ok.txt"]

    def test_low_similarity_content_excluded(self, tmp_path: Path) -> None:
        records = [
            make_record("unrelated.txt", _angle_vector(0.1)),
            make_record("opposite.txt", _angle_vector(-0.8)),
            make_record("related.txt", _angle_vector(0.6)),
        ]

        hits = _searcher(tmp_path, records, [1.0, 0.0]).search("query")

        assert [h.source_path for h in hits] == ["related.txt"]

    def test_ties_keep_store_order(self, tmp_path: Path) -> None:
        records = [make_record(f"f{i}.txt", [1.0, 0.0]) for i in range(5)]

        hits = _searcher(tmp_path, records, [1.0, 0.0]).search("query")

        assert [h.source_path for h in hits] == [f"f{i}.txt" for i in range(5)]

    def test_result_limit(self, tmp_path: Path) -> None:
        records = [make_record(f"f{i:02d}.txt", [1.0, 0.01 * i]) for i in range(20)]

        hits = _searcher(tmp_path, records, [1.0, 0.0]).search("query")

        assert len(hits) == MAX_RESULTS
        assert hits[0].source_path == "f00.txt"

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_returns_nothing(self, tmp_path: Path, limit: int) -> None:
        records = [make_record("a.txt", [1.0, 0.0])]

        assert _searcher(tmp_path, records, [1.0, 0.0]).retrieve("query", limit=limit) == []

    def test_explicit_limit(self, tmp_path: Path) -> None:
        records = [make_record(f"f{i}.txt", [1.0, 0.01 * i]) for i in range(5)]

        hits = _searcher(tmp_path, records, [1.0, 0.0]).retrieve("query", limit=2)

        assert [record.source_path for record, _ in hits] == ["f0.txt", "f1.txt"]

    def test_preview_truncated(self, tmp_path: Path) -> None:
        records = [
            make_record("long.txt", [1.0, 0.0], "x" * 400),
            make_record("short.txt", [0.9, 0.1], "short"),
        ]

        hits = _searcher(tmp_path, records, [1.0, 0.0]).search("query")

        assert hits[0].preview_text == "x" * 150 + "..."
        assert hits[1].preview_text == "short"

    def test_repeated_search_is_deterministic(self, tmp_path: Path) -> None:
        records = [make_record(f"f{i}.txt", [1.0, (i % 3) * 0.2]) for i in range(10)]
        searcher = _searcher(tmp_path, records, [1.0, 0.1])

        assert searcher.search("query") == searcher.search("query")

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_blank_query_rejected_before_embedding(self, tmp_path: Path, query: str) -> None:
        embedder = MagicMock()
        store = VectorStore(tmp_path / "i.json", [make_record("a.txt", [1.0, 0.0])])

        with pytest.raises(InvalidQueryError):
            Searcher(embedder, store).search(query)
        embedder.embed.assert_not_called()

    def test_empty_index(self, tmp_path: Path) -> None:
        embedder = MagicMock()

        with pytest.raises(EmptyIndexError):
            Searcher(embedder, VectorStore(tmp_path / "i.json")).search("anything")
        embedder.embed.assert_not_called()

    def test_dimension_mismatch(self, tmp_path: Path) -> None:
        searcher = _searcher(tmp_path, [make_record("a.txt", [1.0, 0.0])], [1.0, 0.0, 0.0])

        with pytest.raises(DimensionMismatchError) as excinfo:
            searcher.search("query")

        assert excinfo.value.expected == 2
        assert excinfo.value.actual == 3

    def test_retrieve_returns_full_chunk(self, tmp_path: Path) -> None:
        records = [make_record("a.txt", [1.0, 0.0], "z" * 500)]

        ranked = _searcher(tmp_path, records, [1.0, 0.0]).retrieve("query", limit=1)

        assert ranked[0][0].preview_text == "z" * 500
        assert ranked[0][1] == pytest.approx(1.0)

    def test_hit_serialisation(self) -> None:
        hit = RetrievalHit(source_name="a.txt", source_path="d/a.txt", score=0.5, preview_text="p")

        assert hit.to_dict() == {
            "sourceName": "a.txt",
            "sourcePath": "d/a.txt",
            "score": 0.5,
            "previewText": "p",
        }
