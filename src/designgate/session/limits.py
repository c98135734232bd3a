"""
Hard Limits — Non-negotiable bounds on the improvement loop.

These are fixed constants. A caller may ask for fewer iterations than the
absolute cap, never more; no other value is configurable per instance.
"""

from dataclasses import asdict, dataclass
from typing import Any

from designgate.vocabulary import StopRule


@dataclass(frozen=True)
class HardLimits:
    """
    The guardrail table.
    """
    # Iterations before the loop must pause for human review
    max_iterations_before_gate: int = 3
    # Absolute iteration cap; no revision grant can exceed it
    absolute_max_iterations: int = 10
    # A proposal at or above this confidence is ready for review
    confidence_stop_threshold: float = 0.85
    # Proposals below this confidence are discarded, never shown
    minimum_proposal_confidence: float = 0.50
    # Extra file changes are truncated, not rejected
    max_files_per_proposal: int = 5
    # Oldest proposals are evicted beyond this
    max_proposals_per_session: int = 20

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


HARD_LIMITS = HardLimits()


@dataclass(frozen=True)
class ContinuationCheck:
    """
    Answer to "may the loop take another iteration?".

    ``reason`` is shown to the human reviewer and names the guardrail
    that fired; ``rule`` identifies it for programmatic callers.
    """
    can_continue: bool
    reason: str
    rule: StopRule = StopRule.NONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_continue": self.can_continue,
            "reason": self.reason,
            "rule": self.rule.value,
        }
