"""
Session Controller — Guarded iteration over propose/review/revise.

Owns every session and proposal for the life of the process and exposes
the only legal state transitions. Limits come from HARD_LIMITS and cannot
be raised by callers.

Unknown session or proposal ids, discarded proposals and refused
transitions all return None; callers branch on that rather than catch.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from designgate.observability import LogContext, MetricsRegistry, get_logger, get_metrics
from designgate.session.limits import HARD_LIMITS, ContinuationCheck, HardLimits
from designgate.session.models import FileChange, Proposal, Session, SessionSummary
from designgate.vocabulary import ProposalStatus, SessionStatus, StopRule

logger = get_logger("session")


def _decision_extra(session: Session, proposal: Proposal) -> dict[str, Any]:
    """Structured fields attached to human-decision log records."""
    return {
        "extra_data": {
            "proposal_id": proposal.id,
            "proposal_status": proposal.status.value,
            "session_status": session.status.value,
            "iteration": proposal.iteration,
            "confidence": proposal.confidence,
        }
    }


@dataclass(frozen=True)
class RevisionResult:
    """Outcome of a revision request: the proposal and a fresh continuation check."""
    proposal: Proposal
    check: ContinuationCheck

    @property
    def can_continue(self) -> bool:
        return self.check.can_continue

    @property
    def reason(self) -> str:
        return self.check.reason


@dataclass(frozen=True)
class ControllerStatus:
    """Guardrail state for display."""
    active_session: str | None
    total_sessions: int
    hard_limits: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "active_session": self.active_session,
            "total_sessions": self.total_sessions,
            "hard_limits": dict(self.hard_limits),
        }


class SessionController:
    """
    Session registry and state machine for the improvement loop.

    Several sessions may coexist; every operation takes the session id
    explicitly. The "active" session is the most recently started one and
    is a convenience for single-session callers only.
    """

    def __init__(self, metrics: MetricsRegistry | None = None):
        self._sessions: dict[str, Session] = {}
        self._active_session_id: str | None = None
        self._limits: HardLimits = HARD_LIMITS
        self._metrics = metrics or get_metrics()

    # ---- Limits & status ----

    def get_hard_limits(self) -> dict[str, Any]:
        """Copy of the limit table."""
        return self._limits.to_dict()

    def get_status(self) -> ControllerStatus:
        return ControllerStatus(
            active_session=self._active_session_id,
            total_sessions=len(self._sessions),
            hard_limits=self.get_hard_limits(),
        )

    # ---- Session lifecycle ----

    def start_session(
        self,
        objective: str,
        scope: list[str],
        constraints: list[str],
        max_iterations: int | None = None,
    ) -> Session:
        """
        Create a session and make it the active one.

        The requested iteration budget defaults to the human gate and is
        clamped to 0..absolute limit. The budget is informational; the gate
        and cap rules read current_iteration.
        """
        requested = (
            self._limits.max_iterations_before_gate
            if max_iterations is None
            else max_iterations
        )
        session = Session(
            objective=objective,
            scope=list(scope),
            constraints=list(constraints),
            max_iterations=max(0, min(requested, self._limits.absolute_max_iterations)),
        )
        self._sessions[session.id] = session
        self._active_session_id = session.id

        self._metrics.sessions_started.inc()
        self._metrics.active_sessions.inc()
        with LogContext(session.id):
            logger.info(
                f"Started session: {objective!r} "
                f"({len(session.scope)} files, max {session.max_iterations} iterations)"
            )
        return session

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def get_active_session(self) -> Session | None:
        if self._active_session_id is None:
            return None
        return self._sessions.get(self._active_session_id)

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    # ---- Iteration control ----

    def can_continue(self, session_id: str) -> ContinuationCheck:
        """
        Decide whether the orchestrator may run another iteration.

        Rules are evaluated in precedence order and the first that fires
        is reported: unknown session, terminal session, absolute cap,
        human review gate (waived while revising), confidence threshold.
        """
        check = self._evaluate(session_id)
        if not check.can_continue:
            self._metrics.record_stop(check.rule)
        return check

    def _evaluate(self, session_id: str) -> ContinuationCheck:
        limits = self._limits
        session = self._sessions.get(session_id)
        if session is None:
            return ContinuationCheck(False, "Session not found", StopRule.SESSION_NOT_FOUND)

        if session.is_terminal:
            return ContinuationCheck(
                False,
                f"Session is {session.status.value}",
                StopRule.SESSION_TERMINAL,
            )

        if session.current_iteration >= limits.absolute_max_iterations:
            return ContinuationCheck(
                False,
                f"Absolute iteration limit reached ({limits.absolute_max_iterations}). "
                f"Session must end.",
                StopRule.ABSOLUTE_LIMIT,
            )

        if (
            session.current_iteration >= limits.max_iterations_before_gate
            and session.status is not SessionStatus.REVISING
        ):
            return ContinuationCheck(
                False,
                f"Reached {limits.max_iterations_before_gate} iterations. "
                f"Awaiting human review before continuing.",
                StopRule.HUMAN_GATE,
            )

        latest = session.latest_proposal
        if latest is not None and latest.confidence >= limits.confidence_stop_threshold:
            return ContinuationCheck(
                False,
                f"Confidence {latest.confidence:.2f} exceeds threshold "
                f"{limits.confidence_stop_threshold}. Proposal is ready for human review.",
                StopRule.CONFIDENCE_THRESHOLD,
            )

        return ContinuationCheck(True, "OK")

    # ---- Proposals ----

    def add_proposal(
        self,
        session_id: str,
        changes: Iterable[FileChange | Mapping[str, Any]],
        reasoning: str,
        review_notes: str,
        confidence: float,
        principles_applied: list[str],
    ) -> Proposal | None:
        """
        Admit a generated change set into the session.

        Returns None when the session is unknown, the confidence is below
        the minimum (discarded, no iteration consumed), or the session can
        take no more proposals (terminal or at the absolute cap).
        """
        limits = self._limits
        session = self._sessions.get(session_id)
        if session is None:
            return None

        with LogContext(session_id):
            file_changes = [
                c if isinstance(c, FileChange) else FileChange(**c) for c in changes
            ]
            if len(file_changes) > limits.max_files_per_proposal:
                dropped = len(file_changes) - limits.max_files_per_proposal
                file_changes = file_changes[:limits.max_files_per_proposal]
                self._metrics.changes_truncated.inc(dropped)
                logger.warning(
                    f"Proposal truncated to {limits.max_files_per_proposal} file changes "
                    f"({dropped} dropped)"
                )

            if confidence < limits.minimum_proposal_confidence:
                self._metrics.proposals_discarded.inc()
                logger.info(
                    f"Discarded proposal with confidence {confidence:.2f} "
                    f"(minimum {limits.minimum_proposal_confidence})"
                )
                return None

            if session.is_terminal:
                self._metrics.proposals_refused.inc()
                logger.warning(f"Refused proposal: session is {session.status.value}")
                return None

            if session.current_iteration >= limits.absolute_max_iterations:
                self._metrics.proposals_refused.inc()
                logger.warning(
                    f"Refused proposal: absolute iteration limit "
                    f"({limits.absolute_max_iterations}) reached"
                )
                return None

            session.current_iteration += 1
            proposal = Proposal(
                session_id=session.id,
                objective=session.objective,
                iteration=session.current_iteration,
                max_iterations=session.max_iterations,
                changes=file_changes,
                design_reasoning=reasoning,
                review_notes=review_notes,
                confidence=confidence,
                principles_applied=list(principles_applied),
            )
            session.proposals.append(proposal)

            overflow = len(session.proposals) - limits.max_proposals_per_session
            if overflow > 0:
                session.proposals = session.proposals[overflow:]
                self._metrics.proposals_evicted.inc(overflow)
                logger.debug(f"Evicted {overflow} oldest proposal(s)")

            session.status = SessionStatus.AWAITING_REVIEW

            self._metrics.proposals_accepted.inc()
            self._metrics.proposal_confidence.observe(confidence)
            logger.info(
                f"Proposal {proposal.id} admitted at iteration "
                f"{session.current_iteration}/{session.max_iterations} "
                f"(confidence {confidence:.2f})"
            )
            return proposal

    def _decidable(self, session_id: str, proposal_id: str) -> tuple[Session, Proposal] | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        proposal = session.find_proposal(proposal_id)
        if proposal is None:
            return None
        if session.is_terminal:
            with LogContext(session_id):
                logger.warning(
                    f"Ignored decision on {proposal_id}: session is {session.status.value}"
                )
            return None
        return session, proposal

    def approve_proposal(self, session_id: str, proposal_id: str) -> Proposal | None:
        """Human accepts the proposal; the session completes."""
        found = self._decidable(session_id, proposal_id)
        if found is None:
            return None
        session, proposal = found

        proposal.status = ProposalStatus.APPROVED
        session.end(SessionStatus.COMPLETE)

        self._metrics.approvals.inc()
        self._metrics.active_sessions.dec()
        with LogContext(session_id):
            logger.info(
                f"Proposal {proposal_id} approved; session complete",
                extra=_decision_extra(session, proposal),
            )
        return proposal

    def reject_proposal(
        self,
        session_id: str,
        proposal_id: str,
        reason: str,
    ) -> Proposal | None:
        """
        Human rejects the proposal; the session stops.

        Stopped is terminal. A reviewer who wants another attempt must
        request a revision instead of rejecting.
        """
        found = self._decidable(session_id, proposal_id)
        if found is None:
            return None
        session, proposal = found

        proposal.status = ProposalStatus.REJECTED
        proposal.human_feedback = reason
        session.end(SessionStatus.STOPPED)

        self._metrics.rejections.inc()
        self._metrics.active_sessions.dec()
        with LogContext(session_id):
            logger.info(
                f"Proposal {proposal_id} rejected; session stopped: {reason}",
                extra=_decision_extra(session, proposal),
            )
        return proposal

    def request_revision(
        self,
        session_id: str,
        proposal_id: str,
        feedback: str,
    ) -> RevisionResult | None:
        """
        Human asks for changes; grant up to another gate's worth of iterations.

        The new budget is ``min(current_iteration + 3, 10)``.
        """
        found = self._decidable(session_id, proposal_id)
        if found is None:
            return None
        session, proposal = found
        limits = self._limits

        proposal.status = ProposalStatus.REVISION
        proposal.human_feedback = feedback
        session.status = SessionStatus.REVISING
        session.max_iterations = min(
            session.current_iteration + limits.max_iterations_before_gate,
            limits.absolute_max_iterations,
        )

        self._metrics.revisions.inc()
        with LogContext(session_id):
            logger.info(
                f"Revision requested on {proposal_id}; "
                f"budget now {session.max_iterations} iterations",
                extra=_decision_extra(session, proposal),
            )
        return RevisionResult(proposal=proposal, check=self.can_continue(session_id))

    def mark_applied(self, session_id: str, proposal_id: str) -> Proposal | None:
        """Record that an approved proposal has been written out."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        proposal = session.find_proposal(proposal_id)
        if proposal is None or proposal.status is not ProposalStatus.APPROVED:
            return None

        proposal.status = ProposalStatus.APPLIED
        with LogContext(session_id):
            logger.info(f"Proposal {proposal_id} applied")
        return proposal

    # ---- Reporting ----

    def get_session_summary(self, session_id: str) -> SessionSummary | None:
        """Aggregate a session into the log entry the design memory records."""
        session = self._sessions.get(session_id)
        if session is None:
            return None

        def count(status: ProposalStatus) -> int:
            return sum(1 for p in session.proposals if p.status is status)

        learnings = [
            f"Rejected: {p.human_feedback}"
            for p in session.proposals
            if p.status is ProposalStatus.REJECTED and p.human_feedback
        ]
        learnings.extend(
            f"Revised because: {p.human_feedback}"
            for p in session.proposals
            if p.status is ProposalStatus.REVISION and p.human_feedback
        )

        return SessionSummary(
            session_id=session.id,
            date=session.started_at.isoformat(),
            objective=session.objective,
            files_scoped=list(session.scope),
            proposals_made=len(session.proposals),
            proposals_accepted=count(ProposalStatus.APPROVED),
            proposals_rejected=count(ProposalStatus.REJECTED),
            proposals_revised=count(ProposalStatus.REVISION),
            iterations=session.current_iteration,
            learnings=learnings,
        )

    def describe_session(self, session_id: str) -> dict[str, Any] | None:
        """Snapshot of a session for a status view."""
        session = self._sessions.get(session_id)
        if session is None:
            return None

        check = self._evaluate(session_id)
        latest = session.latest_proposal
        return {
            "session_id": session.id,
            "objective": session.objective,
            "status": session.status.value,
            "current_iteration": session.current_iteration,
            "max_iterations": session.max_iterations,
            "proposals_count": len(session.proposals),
            "can_continue": check.can_continue,
            "reason": check.reason,
            "latest_proposal": (
                {
                    "id": latest.id,
                    "confidence": latest.confidence,
                    "status": latest.status.value,
                }
                if latest is not None
                else None
            ),
            "hard_limits": self.get_hard_limits(),
        }


def create_session_controller(metrics: MetricsRegistry | None = None) -> SessionController:
    """Factory for a session controller."""
    return SessionController(metrics)
