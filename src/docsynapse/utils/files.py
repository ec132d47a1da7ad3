"""Utility helpers for walking directories and naming files."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

LOGGER = logging.getLogger(__name__)

#: Directory names whose contents are never scanned.
EXCLUDED_DIRS = frozenset(
    {"node_modules", "__pycache__", ".git", "venv", ".venv", "site-packages"}
)


@dataclass(slots=True)
class FileEntry:
    path: Path
    size: int


def normalize_path(path: Path | str) -> str:
    """Return a platform independent, forward-slash form of ``path``."""
    return os.path.normpath(str(path)).replace("\\", "/")


def is_skippable(path: Path) -> bool:
    """True for hidden files and anything below an excluded directory."""
    if path.name.startswith("."):
        return True
    return any(part in EXCLUDED_DIRS for part in path.parts)


def iter_files(directories: Iterable[Path]) -> Iterator[FileEntry]:
    """Yield regular files under ``directories`` without following symlinks.

    Hidden files and excluded directories are pruned during the walk.
    """
    for directory in directories:
        root_dir = Path(directory)
        if root_dir.is_file():
            if not is_skippable(root_dir):
                yield FileEntry(root_dir, root_dir.stat().st_size)
            continue

        for root, dirs, files in os.walk(
            root_dir, followlinks=False, onerror=_log_walk_error
        ):
            dirs[:] = sorted(
                d for d in dirs if not d.startswith(".") and d not in EXCLUDED_DIRS
            )
            for name in sorted(files):
                path = Path(root) / name
                if is_skippable(path) or path.is_symlink():
                    continue
                try:
                    stat = path.stat()
                except OSError as exc:
                    LOGGER.warning("Cannot stat %s: %s", path, exc)
                    continue
                yield FileEntry(path, stat.st_size)


def _log_walk_error(exc: OSError) -> None:
    LOGGER.warning("Cannot list %s: %s", exc.filename, exc)
