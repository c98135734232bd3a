"""
Shared fixtures for designgate tests.
"""

import pytest

from designgate.memory import (
    DesignMemoryDocument,
    InMemoryDocumentStore,
    MemoryMeta,
    MemoryStore,
)
from designgate.observability import MetricsRegistry
from designgate.session import FileChange, SessionController


@pytest.fixture
def metrics():
    """Fresh metrics registry, isolated from the global one."""
    return MetricsRegistry()


@pytest.fixture
def controller(metrics):
    """Session controller with isolated metrics."""
    return SessionController(metrics=metrics)


@pytest.fixture
def make_change():
    """Factory for file changes."""
    def _make(path: str = "src/pages/Fleet.tsx", summary: str = "Add empty state", change_type: str = "empty_state"):
        return FileChange(
            file_path=path,
            original_content="<div />",
            proposed_content="<EmptyState />",
            diff_summary=summary,
            change_type=change_type,
        )
    return _make


@pytest.fixture
def seed_document():
    """A small but complete memory document."""
    return DesignMemoryDocument(
        meta=MemoryMeta(description="test memory"),
        principles=["Prefer clarity over decoration", "Every list has an empty state"],
        component_patterns={"button": {"radius": "md"}},
        color_palette={"primary": "#4f46e5"},
        typography={"body": {"size": 14}},
    )


@pytest.fixture
def memory_backend(seed_document):
    """In-memory document backend seeded with the test document."""
    return InMemoryDocumentStore(seed_document)


@pytest.fixture
def memory(memory_backend):
    """Design memory service over the in-memory backend."""
    return MemoryStore(memory_backend)
