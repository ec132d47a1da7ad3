"""Exception hierarchy shared by the indexing, search and AI layers."""

from __future__ import annotations


class DocSynapseError(Exception):
    """Base class for all DocSynapse errors."""


class ProviderError(DocSynapseError):
    """The remote embedding or chat provider failed, timed out or returned garbage."""


class ExtractionError(DocSynapseError):
    """A file could not be read or its format is not supported."""

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"Cannot extract text from {path}: {reason}")
        self.path = path
        self.reason = reason


class CorruptIndexError(DocSynapseError):
    """The persisted index exists but cannot be parsed."""


class PersistenceError(DocSynapseError):
    """Writing the index to disk failed."""


class BusyError(DocSynapseError):
    """An indexing run is already in progress."""


class SearchError(DocSynapseError):
    """Base class for request-time search validation failures."""


class EmptyIndexError(SearchError):
    """The index has no records to search."""


class InvalidQueryError(SearchError):
    """The query is empty or whitespace only."""


class DimensionMismatchError(SearchError):
    """Embedding dimensionality does not match the stored records."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension mismatch: index has {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual
