"""JSON flat-file vector store."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Sequence

from docsynapse.errors import CorruptIndexError, DimensionMismatchError, PersistenceError
from docsynapse.models import ChunkRecord

LOGGER = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def merge_records(
    existing: Iterable[ChunkRecord], new: Sequence[ChunkRecord]
) -> List[ChunkRecord]:
    """Replace every path present in ``new`` with its new generation of records."""
    replaced = {record.source_path for record in new}
    kept = [record for record in existing if record.source_path not in replaced]
    return kept + list(new)


def _check_dimension(records: Sequence[ChunkRecord]) -> int | None:
    if not records:
        return None
    dimension = records[0].dimension
    for record in records:
        if record.dimension != dimension:
            raise DimensionMismatchError(dimension, record.dimension)
    return dimension


class VectorStore:
    """In-memory list of chunk records persisted to a single JSON file.

    The record list is never mutated in place; updates swap in a new list so a
    reader holding the old one sees a consistent snapshot.
    """

    def __init__(self, path: Path, records: Sequence[ChunkRecord] = ()) -> None:
        self.path = Path(path)
        self._records: List[ChunkRecord] = list(records)
        self._dimension = _check_dimension(self._records)

    @classmethod
    def load(cls, path: Path) -> "VectorStore":
        """Load the store from ``path``; a missing file gives an empty store."""
        path = Path(path)
        if not path.exists():
            LOGGER.info("No index at %s, starting empty", path)
            return cls(path)

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptIndexError(f"Cannot read index {path}: {exc}") from exc

        # Files written before versioning hold a bare array of records
        if isinstance(payload, list):
            raw_records = payload
        elif isinstance(payload, dict):
            version = payload.get("version")
            if version != SCHEMA_VERSION:
                raise CorruptIndexError(
                    f"Unsupported index version {version!r} in {path}"
                )
            raw_records = payload.get("records")
            if not isinstance(raw_records, list):
                raise CorruptIndexError(f"Index {path} has no record list")
        else:
            raise CorruptIndexError(f"Unexpected index layout in {path}")

        try:
            records = [ChunkRecord.from_dict(item) for item in raw_records]
            store = cls(path, records)
        except (KeyError, TypeError, ValueError, DimensionMismatchError) as exc:
            raise CorruptIndexError(f"Malformed record in {path}: {exc}") from exc

        LOGGER.info("Loaded %d records from %s", len(store), path)
        return store

    @property
    def records(self) -> tuple[ChunkRecord, ...]:
        return tuple(self._records)

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def __len__(self) -> int:
        return len(self._records)

    def size(self) -> int:
        return len(self._records)

    def is_empty(self) -> bool:
        return not self._records

    def paths(self) -> set[str]:
        return {record.source_path for record in self._records}

    def merge(self, new: Sequence[ChunkRecord]) -> "VectorStore":
        """Return a new store with ``new`` merged over this one."""
        merged = merge_records(self._records, new)
        return VectorStore(self.path, merged)

    def persist(self) -> None:
        """Atomically overwrite the index file with the current records."""
        self._write(self._records, self._dimension)

    def commit(self, new: Sequence[ChunkRecord]) -> None:
        """Merge ``new``, persist, then publish the merged records in memory.

        If persisting fails the in-memory records are left untouched.
        """
        merged = self.merge(new)
        self._write(merged._records, merged._dimension)
        self._records = merged._records
        self._dimension = merged._dimension

    def _write(self, records: Sequence[ChunkRecord], dimension: int | None) -> None:
        payload = {
            "version": SCHEMA_VERSION,
            "dimension": dimension,
            "records": [record.to_dict() for record in records],
        }
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(f"Cannot write index {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        LOGGER.info("Persisted %d records to %s", len(records), self.path)
