"""
Memory Document — Schema of the persisted design memory.

One document holds everything the loop has learned: principles, opaque
style configuration, the accept/reject history and the session log.
Validation happens on load, so a corrupt document fails loudly instead of
feeding partial constraints to the generator.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from designgate.vocabulary import ChangeType


SCHEMA_VERSION = "1.0.0"


def utc_timestamp() -> str:
    """ISO 8601 timestamp used for every memory entry."""
    return datetime.now(timezone.utc).isoformat()


class MemoryMeta(BaseModel):
    """
    Document metadata and lifetime counters.

    acceptance_rate is derived from the pattern lists and is recomputed by
    the memory service after every decision write.
    """
    version: str = Field(
        default=SCHEMA_VERSION,
        description="Schema version of the document"
    )

    description: str = Field(
        default="",
        description="Free-text description of this memory"
    )

    last_updated: str | None = Field(
        default=None,
        description="ISO 8601 time of the last write (None until first write)"
    )

    total_sessions: int = Field(
        default=0,
        ge=0,
        description="Sessions recorded in the session log"
    )

    total_proposals: int = Field(
        default=0,
        ge=0,
        description="Decided patterns recorded (approved + rejected)"
    )

    acceptance_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="approved / (approved + rejected), two decimals"
    )


class RejectedPattern(BaseModel):
    """A change the human turned down, with the reason given."""
    date: str = Field(default_factory=utc_timestamp)
    file: str
    description: str
    reason: str


class ApprovedPattern(BaseModel):
    """A change the human accepted."""
    date: str = Field(default_factory=utc_timestamp)
    file: str
    description: str
    change_type: ChangeType


class SessionLogEntry(BaseModel):
    """
    Summary of one finished session.

    Produced by the session controller, forwarded by the orchestrator.
    """
    session_id: str
    date: str
    objective: str
    files_scoped: list[str] = Field(default_factory=list)
    proposals_made: int = 0
    proposals_accepted: int = 0
    proposals_rejected: int = 0
    proposals_revised: int = 0
    iterations: int = 0
    learnings: list[str] = Field(default_factory=list)


class DesignMemoryDocument(BaseModel):
    """
    The whole persisted design memory.

    Documents written by earlier tooling used ``_meta`` and
    ``design_principles``; both are accepted on input.
    """
    meta: MemoryMeta = Field(
        default_factory=MemoryMeta,
        validation_alias=AliasChoices("meta", "_meta"),
    )

    principles: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("principles", "design_principles"),
        description="Ordered free-text rules, unique by exact text"
    )

    component_patterns: dict[str, Any] = Field(default_factory=dict)
    color_palette: dict[str, Any] = Field(default_factory=dict)
    typography: dict[str, Any] = Field(default_factory=dict)

    rejected_patterns: list[RejectedPattern] = Field(default_factory=list)
    approved_patterns: list[ApprovedPattern] = Field(default_factory=list)
    session_log: list[SessionLogEntry] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with JSON-compatible values."""
        return self.model_dump(mode="json")


DEFAULT_PRINCIPLES = [
    "Every list or table has an explicit empty state that tells the user what to do next",
    "Loading states reserve the final layout so content does not jump",
    "Errors say what happened and offer a recovery action",
    "Use the spacing scale; never introduce one-off margins",
    "Interactive elements are reachable and operable from the keyboard",
]


def default_document() -> DesignMemoryDocument:
    """Seed document written by an explicit initialization step."""
    return DesignMemoryDocument(
        meta=MemoryMeta(
            description="Learned design preferences and human feedback history",
        ),
        principles=list(DEFAULT_PRINCIPLES),
    )
