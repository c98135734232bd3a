"""
Session — Guarded iteration controller for the design loop.

Provides:
- Hard limits: fixed iteration, confidence and volume bounds
- Session and proposal state
- SessionController: the only legal state transitions
"""

from designgate.session.limits import (
    HARD_LIMITS,
    HardLimits,
    ContinuationCheck,
)
from designgate.session.models import (
    FileChange,
    Proposal,
    Session,
    SessionSummary,
)
from designgate.session.controller import (
    RevisionResult,
    ControllerStatus,
    SessionController,
    create_session_controller,
)

__all__ = [
    # Limits
    "HARD_LIMITS",
    "HardLimits",
    "ContinuationCheck",
    # Models
    "FileChange",
    "Proposal",
    "Session",
    "SessionSummary",
    # Controller
    "RevisionResult",
    "ControllerStatus",
    "SessionController",
    "create_session_controller",
]
