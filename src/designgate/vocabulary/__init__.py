"""
Vocabulary — Enumerated types forming the shared language of the system.
"""

from designgate.vocabulary.enums import (
    # Changes
    ChangeType,
    # Lifecycle
    SessionStatus,
    ProposalStatus,
    StopRule,
    # Memory
    MemorySection,
)

__all__ = [
    "ChangeType",
    "SessionStatus",
    "ProposalStatus",
    "StopRule",
    "MemorySection",
]
