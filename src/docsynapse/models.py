"""Core DocSynapse data models and progress events."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Tuple, Union

#: Version stamped on every streamed event so clients can detect format changes.
EVENT_VERSION = 1


@dataclass(frozen=True, slots=True)
class ChunkRecord:
    """Embedded chunk of a document, the unit stored in the index."""

    id: str
    source_path: str
    source_name: str
    embedding: Tuple[float, ...]
    preview_text: str

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sourcePath": self.source_path,
            "sourceName": self.source_name,
            "embedding": list(self.embedding),
            "previewText": self.preview_text,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkRecord":
        return cls(
            id=str(data["id"]),
            source_path=str(data["sourcePath"]),
            source_name=str(data["sourceName"]),
            embedding=tuple(float(value) for value in data["embedding"]),
            preview_text=str(data["previewText"]),
        )


@dataclass(slots=True)
class RetrievalHit:
    """Search result for a single source file."""

    source_name: str
    source_path: str
    score: float
    preview_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceName": self.source_name,
            "sourcePath": self.source_path,
            "score": self.score,
            "previewText": self.preview_text,
        }


@dataclass(slots=True)
class FileMatch:
    """File matched by the keyword scan."""

    name: str
    path: str
    keywords: List[str]
    size: int
    type: str


@dataclass(slots=True)
class KeywordConfig:
    keywords: List[str]
    destination_folder: str = ""


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _camel_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {_camel(key): _camel_keys(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_camel_keys(item) for item in value]
    return value


class _Event:
    """Mixin giving events a stable camelCase JSON line encoding."""

    __slots__ = ()

    def to_dict(self) -> Dict[str, Any]:
        return _camel_keys(asdict(self))  # type: ignore[call-overload]

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(slots=True)
class ScanProgress(_Event):
    files_processed: int
    total_files: int
    status: Literal["indexing", "complete"] = "indexing"
    type: Literal["progress"] = "progress"
    version: int = EVENT_VERSION


@dataclass(slots=True)
class IndexComplete(_Event):
    """Terminal event of a successful indexing run."""

    total_chunks: int
    new_chunks: int = 0
    files_processed: int = 0
    failed_files: int = 0
    skipped_files: int = 0
    failed_chunks: int = 0
    success: bool = True
    type: Literal["complete"] = "complete"
    version: int = EVENT_VERSION


@dataclass(slots=True)
class IndexFailed(_Event):
    """Terminal event of a run that could not persist its results."""

    error: str
    success: bool = False
    type: Literal["failed"] = "failed"
    version: int = EVENT_VERSION


@dataclass(slots=True)
class KeywordScanComplete(_Event):
    results: List[FileMatch] = field(default_factory=list)
    total_files: int = 0
    files_processed: int = 0
    type: Literal["complete"] = "complete"
    version: int = EVENT_VERSION


IndexEvent = Union[ScanProgress, IndexComplete, IndexFailed]
KeywordScanEvent = Union[ScanProgress, KeywordScanComplete]
