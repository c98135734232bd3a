"""
designgate — Guarded design-improvement loop with a persistent learning memory.

Two independent components, composed by an external orchestrator:
- SessionController: bounded propose/review/revise iterations with hard limits
- MemoryStore: durable record of human decisions and the design context
  built from it
"""

from designgate.errors import (
    DesignGateError,
    MemoryNotInitializedError,
    MemoryDocumentExistsError,
)
from designgate.memory import (
    MemoryStore,
    JSONFileDocumentStore,
    InMemoryDocumentStore,
    initialize_memory,
)
from designgate.session import (
    HARD_LIMITS,
    ContinuationCheck,
    FileChange,
    Proposal,
    Session,
    SessionController,
    SessionSummary,
)
from designgate.vocabulary import (
    ChangeType,
    SessionStatus,
    ProposalStatus,
    StopRule,
    MemorySection,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Errors
    "DesignGateError",
    "MemoryNotInitializedError",
    "MemoryDocumentExistsError",
    # Memory
    "MemoryStore",
    "JSONFileDocumentStore",
    "InMemoryDocumentStore",
    "initialize_memory",
    # Session
    "HARD_LIMITS",
    "ContinuationCheck",
    "FileChange",
    "Proposal",
    "Session",
    "SessionController",
    "SessionSummary",
    # Vocabulary
    "ChangeType",
    "SessionStatus",
    "ProposalStatus",
    "StopRule",
    "MemorySection",
]
