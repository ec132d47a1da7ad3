"""Keyword scan: sort files by the keyword sets they contain."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Sequence

from docsynapse.ingestion.extractor import extract_text
from docsynapse.models import FileMatch, KeywordConfig, KeywordScanComplete, KeywordScanEvent, ScanProgress
from docsynapse.utils.files import iter_files, normalize_path

LOGGER = logging.getLogger(__name__)


def matching_configs(content: str, configs: Sequence[KeywordConfig]) -> List[KeywordConfig]:
    """Configs whose keywords all appear in ``content``, ignoring case."""
    lowered = content.lower()
    return [
        config
        for config in configs
        if config.keywords and all(keyword.lower() in lowered for keyword in config.keywords)
    ]


class KeywordScanner:
    def __init__(self, *, progress_every: int = 5) -> None:
        self.progress_every = max(progress_every, 1)

    def scan(
        self, directories: Sequence[Path], configs: Sequence[KeywordConfig]
    ) -> Iterator[KeywordScanEvent]:
        files = list(iter_files(directories))
        total = len(files)
        results: List[FileMatch] = []
        processed = 0

        for entry in files:
            try:
                content = extract_text(entry.path)
            except Exception as exc:
                LOGGER.debug("Skipping unreadable file %s: %s", entry.path, exc)
                content = ""

            matched = matching_configs(content, configs) if content else []
            if matched:
                results.append(
                    FileMatch(
                        name=entry.path.name,
                        path=normalize_path(entry.path),
                        keywords=[kw for config in matched for kw in config.keywords],
                        size=entry.size,
                        type=entry.path.suffix,
                    )
                )

            processed += 1
            if processed % self.progress_every == 0 and processed < total:
                yield ScanProgress(files_processed=processed, total_files=total)

        LOGGER.info("Keyword scan matched %d of %d files", len(results), total)
        yield KeywordScanComplete(results=results, total_files=total, files_processed=processed)
