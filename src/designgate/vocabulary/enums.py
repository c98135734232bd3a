"""
Vocabulary enums — the shared language of the design loop.

Enumerated types referenced by sessions, proposals, the memory document,
and the memory query surface.
"""

from enum import Enum


# =============================================================================
# DESIGN CHANGES
# =============================================================================

class ChangeType(str, Enum):
    """
    Closed category describing the kind of UI change a proposal makes.

    Stored verbatim in approved patterns and used to rank which kinds of
    change get accepted most often.
    """
    LAYOUT = "layout"
    SPACING = "spacing"
    COLOR = "color"
    TYPOGRAPHY = "typography"
    COMPONENT = "component"
    INTERACTION = "interaction"
    EMPTY_STATE = "empty_state"
    LOADING_STATE = "loading_state"
    ERROR_STATE = "error_state"
    NAVIGATION = "navigation"
    ANIMATION = "animation"
    ACCESSIBILITY = "accessibility"
    OTHER = "other"


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

class SessionStatus(str, Enum):
    """
    Lifecycle state of an improvement session.

    planning -> awaiting_review -> {complete | stopped | revising}
    revising -> awaiting_review (on the next proposal)
    COMPLETE and STOPPED are terminal.
    """
    PLANNING = "planning"
    PROPOSING = "proposing"
    AWAITING_REVIEW = "awaiting_review"
    REVISING = "revising"
    COMPLETE = "complete"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETE, SessionStatus.STOPPED)


class ProposalStatus(str, Enum):
    """State of a single proposal within a session."""
    PENDING = "pending"            # Awaiting human review
    APPROVED = "approved"          # Human accepted
    REJECTED = "rejected"          # Human rejected (with reason)
    REVISION = "revision"          # Human wants changes (with feedback)
    AUTO_STOPPED = "auto_stopped"  # Hit max iterations or confidence threshold
    APPLIED = "applied"            # Changes written by the orchestrator


class StopRule(str, Enum):
    """
    Which guardrail answered a continuation check.

    Listed in evaluation precedence order.
    """
    SESSION_NOT_FOUND = "session_not_found"
    SESSION_TERMINAL = "session_terminal"
    ABSOLUTE_LIMIT = "absolute_limit"
    HUMAN_GATE = "human_gate"
    CONFIDENCE_THRESHOLD = "confidence_threshold"
    NONE = "none"                  # No rule fired, iteration may proceed


# =============================================================================
# MEMORY QUERIES
# =============================================================================

class MemorySection(str, Enum):
    """Views of the design memory exposed to the orchestrator."""
    ALL = "all"
    PRINCIPLES = "principles"
    PATTERNS = "patterns"
    COLORS = "colors"
    TYPOGRAPHY = "typography"
    REJECTED = "rejected"
    APPROVED = "approved"
    STATS = "stats"
