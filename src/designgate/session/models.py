"""
Session Models — In-process state of improvement sessions.

Sessions and their proposals live only as long as the controller that
owns them; the durable record is the SessionSummary handed to memory.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from designgate.vocabulary import ChangeType, ProposalStatus, SessionStatus


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return f"session-{uuid4().hex}"


def new_proposal_id() -> str:
    return f"proposal-{uuid4().hex}"


@dataclass
class FileChange:
    """
    One file edit within a proposal.
    """
    file_path: str
    original_content: str
    proposed_content: str
    diff_summary: str
    change_type: ChangeType = ChangeType.OTHER

    def __post_init__(self) -> None:
        self.change_type = ChangeType(self.change_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "original_content": self.original_content,
            "proposed_content": self.proposed_content,
            "diff_summary": self.diff_summary,
            "change_type": self.change_type.value,
        }


@dataclass
class Proposal:
    """
    A candidate change set produced within a session.

    ``iteration`` and ``max_iterations`` are snapshots taken when the
    proposal was admitted.
    """
    session_id: str
    objective: str
    iteration: int
    max_iterations: int
    changes: list[FileChange]
    design_reasoning: str
    review_notes: str
    confidence: float
    principles_applied: list[str] = field(default_factory=list)
    status: ProposalStatus = ProposalStatus.PENDING
    human_feedback: str | None = None
    id: str = field(default_factory=new_proposal_id)
    created_at: datetime = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "objective": self.objective,
            "iteration": self.iteration,
            "max_iterations": self.max_iterations,
            "changes": [c.to_dict() for c in self.changes],
            "design_reasoning": self.design_reasoning,
            "review_notes": self.review_notes,
            "confidence": self.confidence,
            "principles_applied": list(self.principles_applied),
            "status": self.status.value,
            "human_feedback": self.human_feedback,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Session:
    """
    One bounded improvement attempt.
    """
    objective: str
    scope: list[str]
    constraints: list[str]
    max_iterations: int
    current_iteration: int = 0
    proposals: list[Proposal] = field(default_factory=list)
    status: SessionStatus = SessionStatus.PLANNING
    id: str = field(default_factory=new_session_id)
    started_at: datetime = field(default_factory=_utc_now)
    ended_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def latest_proposal(self) -> Proposal | None:
        return self.proposals[-1] if self.proposals else None

    def find_proposal(self, proposal_id: str) -> Proposal | None:
        for proposal in self.proposals:
            if proposal.id == proposal_id:
                return proposal
        return None

    def end(self, status: SessionStatus) -> None:
        """Move to a terminal status and stamp the end time."""
        self.status = status
        self.ended_at = _utc_now()


@dataclass
class SessionSummary:
    """
    Session log entry handed to the design memory at session end.

    Field names match the memory document's session_log schema.
    """
    session_id: str
    date: str
    objective: str
    files_scoped: list[str]
    proposals_made: int
    proposals_accepted: int
    proposals_rejected: int
    proposals_revised: int
    iterations: int
    learnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "date": self.date,
            "objective": self.objective,
            "files_scoped": list(self.files_scoped),
            "proposals_made": self.proposals_made,
            "proposals_accepted": self.proposals_accepted,
            "proposals_rejected": self.proposals_rejected,
            "proposals_revised": self.proposals_revised,
            "iterations": self.iterations,
            "learnings": list(self.learnings),
        }
