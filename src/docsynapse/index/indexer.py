"""Document indexing pipeline."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence

from docsynapse.embedding.encoder import EmbeddingGateway
from docsynapse.errors import BusyError, ProviderError
from docsynapse.index.storage import VectorStore
from docsynapse.ingestion.extractor import extract_text
from docsynapse.models import ChunkRecord, IndexComplete, IndexEvent, ScanProgress
from docsynapse.utils.files import FileEntry, iter_files, normalize_path
from docsynapse.utils.text import chunk_text

LOGGER = logging.getLogger(__name__)


def find_files(directories: Sequence[Path]) -> list[FileEntry]:
    """Find every indexable file under the given directories."""
    return list(iter_files(directories))


@dataclass(slots=True)
class IndexStats:
    files_processed: int = 0
    indexed_files: int = 0
    skipped_files: int = 0
    failed_files: int = 0
    failed_chunks: int = 0
    new_chunks: int = 0

    def increment(self, status: str) -> None:
        if status == "indexed":
            self.indexed_files += 1
        elif status == "skipped":
            self.skipped_files += 1
        else:
            self.failed_files += 1
        self.files_processed += 1


class Indexer:
    """Walks directories, embeds their documents and merges them into the store.

    Only one run may be active per indexer; a concurrent run raises
    :class:`BusyError` when first iterated.
    """

    def __init__(
        self,
        embedder: EmbeddingGateway,
        store: VectorStore,
        *,
        chunk_chars: int = 1000,
        overlap: int = 200,
        min_text_chars: int = 50,
        max_chunks_per_file: int = 10,
        progress_every: int = 5,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.chunk_chars = chunk_chars
        self.overlap = overlap
        self.min_text_chars = min_text_chars
        self.max_chunks_per_file = max_chunks_per_file
        self.progress_every = max(progress_every, 1)
        self._run_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def index(self, directories: Sequence[Path]) -> Iterator[IndexEvent]:
        """Index ``directories``, yielding progress and a final summary.

        Nothing is merged into the store unless the run reaches the end; closing
        the generator early abandons the run.
        """
        if not self._run_lock.acquire(blocking=False):
            raise BusyError("An indexing run is already in progress")
        try:
            yield from self._run(directories)
        finally:
            self._run_lock.release()

    def _run(self, directories: Sequence[Path]) -> Iterator[IndexEvent]:
        files = find_files(directories)
        total = len(files)
        LOGGER.info("Indexing %d files from %d directories", total, len(directories))

        stats = IndexStats()
        new_records: List[ChunkRecord] = []
        yield ScanProgress(files_processed=0, total_files=total)

        for entry in files:
            records = self._index_single(entry.path, stats)
            new_records.extend(records)
            if stats.files_processed % self.progress_every == 0 and stats.files_processed < total:
                yield ScanProgress(files_processed=stats.files_processed, total_files=total)

        # a failed commit raises here, before any "complete" event is sent
        self.store.commit(new_records)
        yield ScanProgress(files_processed=total, total_files=total, status="complete")
        stats.new_chunks = len(new_records)
        LOGGER.info(
            "Indexed %d files (%d skipped, %d failed), %d new chunks, %d failed chunks",
            stats.indexed_files,
            stats.skipped_files,
            stats.failed_files,
            stats.new_chunks,
            stats.failed_chunks,
        )
        yield IndexComplete(
            total_chunks=len(self.store),
            new_chunks=stats.new_chunks,
            files_processed=stats.files_processed,
            failed_files=stats.failed_files,
            skipped_files=stats.skipped_files,
            failed_chunks=stats.failed_chunks,
        )

    def _index_single(self, path: Path, stats: IndexStats) -> List[ChunkRecord]:
        """Embed one file; failures are logged and counted, never raised."""
        try:
            text = extract_text(path)
        except Exception as exc:
            LOGGER.warning("Skipping unreadable file %s: %s", path, exc)
            stats.increment("failed")
            return []

        if len(text.strip()) < self.min_text_chars:
            LOGGER.debug("Skipping %s: too little text", path)
            stats.increment("skipped")
            return []

        source_path = normalize_path(path)
        records: List[ChunkRecord] = []
        chunks = chunk_text(text, max_chars=self.chunk_chars, overlap=self.overlap)
        for index, chunk in enumerate(chunks):
            if index >= self.max_chunks_per_file:
                LOGGER.debug("Chunk limit reached for %s", path)
                break
            try:
                vector = self.embedder.embed(chunk)
            except ProviderError as exc:
                LOGGER.warning("Embedding failed for chunk %d of %s: %s", index, path, exc)
                stats.failed_chunks += 1
                continue
            records.append(
                ChunkRecord(
                    id=uuid.uuid4().hex,
                    source_path=source_path,
                    source_name=path.name,
                    embedding=tuple(float(value) for value in vector),
                    preview_text=chunk,
                )
            )

        stats.increment("indexed")
        return records
