"""
Metrics — Guardrail counters for the design loop.

Tracks how often each hard limit fires and how human decisions split,
for display by whatever surface hosts the loop.
"""

from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from designgate.vocabulary import StopRule


class Counter:
    """Monotonically increasing counter."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._value = 0.0
        self._lock = Lock()

    def inc(self, amount: float = 1.0) -> None:
        """Increment counter."""
        with self._lock:
            self._value += amount

    @property
    def value(self) -> float:
        return self._value

    def reset(self) -> None:
        """Reset counter (for testing)."""
        with self._lock:
            self._value = 0.0


class Gauge:
    """Value that can go up and down."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._value = 0.0
        self._lock = Lock()

    def inc(self, amount: float = 1.0) -> None:
        with self._lock:
            self._value += amount

    def dec(self, amount: float = 1.0) -> None:
        with self._lock:
            self._value -= amount

    @property
    def value(self) -> float:
        return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0.0


class Histogram:
    """
    Simple histogram for tracking distributions.

    Tracks count, min, max and the running mean.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._count = 0
        self._sum = 0.0
        self._min = float("inf")
        self._max = float("-inf")
        self._lock = Lock()

    def observe(self, value: float) -> None:
        """Record an observation."""
        with self._lock:
            self._count += 1
            self._sum += value
            self._min = min(self._min, value)
            self._max = max(self._max, value)

    @property
    def count(self) -> int:
        return self._count

    @property
    def avg(self) -> float:
        if self._count == 0:
            return 0.0
        return self._sum / self._count

    @property
    def min(self) -> float:
        return self._min if self._count > 0 else 0.0

    @property
    def max(self) -> float:
        return self._max if self._count > 0 else 0.0

    def reset(self) -> None:
        with self._lock:
            self._count = 0
            self._sum = 0.0
            self._min = float("inf")
            self._max = float("-inf")

    def to_dict(self) -> dict[str, float]:
        return {
            "count": self._count,
            "avg": self.avg,
            "min": self.min,
            "max": self.max,
        }


def _stop_counters() -> dict[StopRule, Counter]:
    return {
        rule: Counter(f"stops_{rule.value}", f"Continuation checks stopped by {rule.value}")
        for rule in StopRule
        if rule is not StopRule.NONE
    }


@dataclass
class MetricsRegistry:
    """
    Registry for all designgate metrics.
    """
    # Session metrics
    sessions_started: Counter = field(
        default_factory=lambda: Counter("sessions_started", "Sessions started")
    )
    active_sessions: Gauge = field(
        default_factory=lambda: Gauge("active_sessions", "Sessions not yet terminal")
    )

    # Proposal metrics
    proposals_accepted: Counter = field(
        default_factory=lambda: Counter("proposals_accepted", "Proposals admitted to a session")
    )
    proposals_discarded: Counter = field(
        default_factory=lambda: Counter("proposals_discarded", "Proposals below minimum confidence")
    )
    proposals_refused: Counter = field(
        default_factory=lambda: Counter("proposals_refused", "Proposals refused by a closed or capped session")
    )
    changes_truncated: Counter = field(
        default_factory=lambda: Counter("changes_truncated", "File changes dropped by the per-proposal cap")
    )
    proposals_evicted: Counter = field(
        default_factory=lambda: Counter("proposals_evicted", "Old proposals evicted from a session")
    )
    proposal_confidence: Histogram = field(
        default_factory=lambda: Histogram("proposal_confidence", "Confidence of admitted proposals")
    )

    # Human decisions
    approvals: Counter = field(
        default_factory=lambda: Counter("approvals", "Proposals approved")
    )
    rejections: Counter = field(
        default_factory=lambda: Counter("rejections", "Proposals rejected")
    )
    revisions: Counter = field(
        default_factory=lambda: Counter("revisions", "Revisions requested")
    )

    # Guardrails
    stops: dict[StopRule, Counter] = field(default_factory=_stop_counters)

    def record_stop(self, rule: StopRule) -> None:
        """Count a negative continuation check."""
        if rule in self.stops:
            self.stops[rule].inc()

    def to_dict(self) -> dict[str, Any]:
        """Export all metrics as dict."""
        return {
            "sessions": {
                "started": self.sessions_started.value,
                "active": self.active_sessions.value,
            },
            "proposals": {
                "accepted": self.proposals_accepted.value,
                "discarded": self.proposals_discarded.value,
                "refused": self.proposals_refused.value,
                "changes_truncated": self.changes_truncated.value,
                "evicted": self.proposals_evicted.value,
                "confidence": self.proposal_confidence.to_dict(),
            },
            "decisions": {
                "approved": self.approvals.value,
                "rejected": self.rejections.value,
                "revised": self.revisions.value,
            },
            "stops": {rule.value: counter.value for rule, counter in self.stops.items()},
        }

    def reset(self) -> None:
        """Reset all metrics (for testing)."""
        self.sessions_started.reset()
        self.active_sessions.reset()
        self.proposals_accepted.reset()
        self.proposals_discarded.reset()
        self.proposals_refused.reset()
        self.changes_truncated.reset()
        self.proposals_evicted.reset()
        self.proposal_confidence.reset()
        self.approvals.reset()
        self.rejections.reset()
        self.revisions.reset()
        for counter in self.stops.values():
            counter.reset()


# Global metrics registry
_metrics = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get global metrics registry."""
    return _metrics


def reset_metrics() -> None:
    """Reset all metrics (for testing)."""
    _metrics.reset()
