"""
Memory — Durable design memory for the improvement loop.

Provides:
- Document schema: principles, style configuration, decision history
- Storage backends: JSON file and in-memory
- MemoryStore: decision recording, derived statistics, design context
"""

from designgate.memory.document import (
    SCHEMA_VERSION,
    MemoryMeta,
    RejectedPattern,
    ApprovedPattern,
    SessionLogEntry,
    DesignMemoryDocument,
    default_document,
)
from designgate.memory.storage import (
    DocumentStore,
    InMemoryDocumentStore,
    JSONFileDocumentStore,
    initialize_memory,
    create_memory_store,
    create_file_store,
)
from designgate.memory.design_memory import (
    MemoryStore,
    create_design_memory,
)

__all__ = [
    # Document
    "SCHEMA_VERSION",
    "MemoryMeta",
    "RejectedPattern",
    "ApprovedPattern",
    "SessionLogEntry",
    "DesignMemoryDocument",
    "default_document",
    # Storage
    "DocumentStore",
    "InMemoryDocumentStore",
    "JSONFileDocumentStore",
    "initialize_memory",
    "create_memory_store",
    "create_file_store",
    # Service
    "MemoryStore",
    "create_design_memory",
]
