"""Shared fixtures: deterministic embedders and record builders."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Dict, Sequence

import pytest

from docsynapse.index.storage import VectorStore
from docsynapse.models import ChunkRecord


class HashingProvider:
    """Deterministic bag-of-characters embedding, no network."""

    def __init__(self, dimension: int = 8) -> None:
        self.dimension = dimension
        self.calls: list[str] = []

    def embed(self, text: str) -> Sequence[float]:
        self.calls.append(text)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [digest[i] / 255.0 + 0.01 for i in range(self.dimension)]


class TableProvider:
    """Returns fixed vectors for known texts."""

    def __init__(self, table: Dict[str, Sequence[float]]) -> None:
        self.table = table
        self.calls: list[str] = []

    def embed(self, text: str) -> Sequence[float]:
        self.calls.append(text)
        return self.table[text]


def make_record(
    path: str, vector: Sequence[float], text: str = "chunk", record_id: str | None = None
) -> ChunkRecord:
    return ChunkRecord(
        id=record_id or f"{path}-{text}",
        source_path=path,
        source_name=Path(path).name,
        embedding=tuple(float(v) for v in vector),
        preview_text=text,
    )


@pytest.fixture
def store(tmp_path_factory: pytest.TempPathFactory) -> VectorStore:
    # kept outside tmp_path so indexing tmp_path never picks up the index file
    return VectorStore(tmp_path_factory.mktemp("state") / "index.json")
