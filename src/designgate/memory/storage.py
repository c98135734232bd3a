"""
Memory Storage — Persistence layer for the design memory document.

Backends read and write the whole document on every call; there is no
partial or streamed persistence and no write lock (last writer wins).
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from designgate.errors import MemoryDocumentExistsError, MemoryNotInitializedError
from designgate.memory.document import DesignMemoryDocument, default_document
from designgate.observability import get_logger

logger = get_logger("memory.storage")


DEFAULT_MEMORY_FILENAME = "design_memory.json"


@runtime_checkable
class DocumentStore(Protocol):
    """
    Protocol for design memory backends.
    """

    @property
    def location(self) -> str:
        """Human-readable location used in error messages."""
        ...

    def exists(self) -> bool:
        """Check if the document exists."""
        ...

    def read(self) -> DesignMemoryDocument:
        """
        Read the document.

        Raises MemoryNotInitializedError when absent; parse and validation
        errors propagate.
        """
        ...

    def write(self, document: DesignMemoryDocument) -> None:
        """Write the whole document. Failures propagate."""
        ...


class InMemoryDocumentStore:
    """
    In-memory document store for testing.

    Holds a deep copy so callers cannot mutate the "persisted" state
    without going through write().
    """

    def __init__(self, document: DesignMemoryDocument | None = None):
        self._document = document.model_copy(deep=True) if document else None
        self.write_count = 0

    @property
    def location(self) -> str:
        return "<memory>"

    def exists(self) -> bool:
        return self._document is not None

    def read(self) -> DesignMemoryDocument:
        if self._document is None:
            raise MemoryNotInitializedError(self.location)
        return self._document.model_copy(deep=True)

    def write(self, document: DesignMemoryDocument) -> None:
        self._document = document.model_copy(deep=True)
        self.write_count += 1

    def clear(self) -> None:
        """Drop the document (testing helper)."""
        self._document = None


class JSONFileDocumentStore:
    """
    JSON-file-backed document store.

    The file is the durable record; each write replaces it atomically, so
    a failed write leaves the previous document intact.
    """

    def __init__(self, path: str | Path = DEFAULT_MEMORY_FILENAME):
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> DesignMemoryDocument:
        if not self.path.exists():
            raise MemoryNotInitializedError(self.location)
        raw = self.path.read_text(encoding="utf-8")
        return DesignMemoryDocument.model_validate(json.loads(raw))

    def write(self, document: DesignMemoryDocument) -> None:
        """Write to a sibling temp file, then replace the target in one step."""
        payload = json.dumps(document.to_dict(), indent=2)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def initialize_memory(
    path: str | Path = DEFAULT_MEMORY_FILENAME,
    force: bool = False,
) -> JSONFileDocumentStore:
    """
    Write the seed document to ``path``.

    This is the only place a memory document is created; loading never
    fabricates one.
    """
    store = JSONFileDocumentStore(path)
    if store.exists() and not force:
        raise MemoryDocumentExistsError(store.location)
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.write(default_document())
    logger.info(f"Initialized design memory at {store.location}")
    return store


def create_memory_store(document: DesignMemoryDocument | None = None) -> InMemoryDocumentStore:
    """Factory for in-memory store."""
    return InMemoryDocumentStore(document)


def create_file_store(path: str | Path = DEFAULT_MEMORY_FILENAME) -> JSONFileDocumentStore:
    """Factory for JSON file store."""
    return JSONFileDocumentStore(path)
