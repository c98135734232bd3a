"""Tests for the session controller."""

from dataclasses import replace

import pytest

from designgate.session import HARD_LIMITS, FileChange, SessionController
from designgate.vocabulary import ProposalStatus, SessionStatus, StopRule


def _propose(controller, session_id, make_change, confidence=0.6, n_changes=1, **kwargs):
    changes = [make_change(path=f"src/file_{i}.tsx") for i in range(n_changes)]
    return controller.add_proposal(
        session_id,
        changes,
        kwargs.get("reasoning", "Improves hierarchy"),
        kwargs.get("review_notes", "Spacing might be tight"),
        confidence,
        kwargs.get("principles", ["Prefer clarity over decoration"]),
    )


class TestStartSession:
    """Tests for session creation."""

    def test_defaults(self, controller):
        """New session starts in planning with the gate as its budget."""
        session = controller.start_session("Fix empty states", ["src/pages/Fleet.tsx"], [])

        assert session.status is SessionStatus.PLANNING
        assert session.current_iteration == 0
        assert session.max_iterations == 3
        assert session.proposals == []
        assert session.ended_at is None

    def test_requested_budget_is_kept_below_cap(self, controller):
        """A requested budget under the cap is used as-is."""
        session = controller.start_session("Polish", [], [], max_iterations=5)
        assert session.max_iterations == 5

    def test_requested_budget_is_clamped(self, controller):
        """No request can exceed the absolute cap."""
        session = controller.start_session("Polish", [], [], max_iterations=20)
        assert session.max_iterations == 10

    @pytest.mark.parametrize("requested", [0, -5])
    def test_non_positive_budget_floors_at_zero(self, controller, requested):
        """A zero or negative request never yields a negative budget."""
        session = controller.start_session("Polish", [], [], max_iterations=requested)
        assert session.max_iterations == 0
        assert controller.can_continue(session.id).can_continue

    def test_becomes_active(self, controller):
        """The most recently started session is the active one."""
        first = controller.start_session("First", [], [])
        second = controller.start_session("Second", [], [])

        assert controller.get_active_session() is second
        assert controller.get_session(first.id) is first
        assert controller.get_status().total_sessions == 2

    def test_unique_ids(self, controller):
        """Rapid starts never collide."""
        ids = {controller.start_session("Loop", [], []).id for _ in range(50)}
        assert len(ids) == 50
        assert all(sid.startswith("session-") for sid in ids)

    def test_no_active_session_initially(self, controller):
        """A fresh controller has no active session."""
        assert controller.get_active_session() is None
        assert controller.get_status().active_session is None

    def test_copies_scope_and_constraints(self, controller):
        """Caller lists are not shared with the session."""
        scope = ["a.tsx"]
        constraints = ["no new colors"]
        session = controller.start_session("Polish", scope, constraints)

        scope.append("b.tsx")
        constraints.clear()

        assert session.scope == ["a.tsx"]
        assert session.constraints == ["no new colors"]


class TestCanContinue:
    """Tests for continuation rules and their precedence."""

    def test_unknown_session(self, controller):
        """Unknown ids cannot continue."""
        check = controller.can_continue("session-missing")

        assert check.can_continue is False
        assert check.reason == "Session not found"
        assert check.rule is StopRule.SESSION_NOT_FOUND

    def test_fresh_session_can_continue(self, controller):
        """A new session may iterate."""
        session = controller.start_session("Polish", [], [])
        check = controller.can_continue(session.id)

        assert check.can_continue is True
        assert check.reason == "OK"
        assert check.rule is StopRule.NONE

    def test_complete_session_is_terminal(self, controller, make_change):
        """Approved sessions cannot continue."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change)
        controller.approve_proposal(session.id, proposal.id)

        check = controller.can_continue(session.id)
        assert check.can_continue is False
        assert check.reason == "Session is complete"
        assert check.rule is StopRule.SESSION_TERMINAL

    def test_stopped_session_is_terminal(self, controller, make_change):
        """Rejected sessions cannot continue."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change)
        controller.reject_proposal(session.id, proposal.id, "Too busy")

        check = controller.can_continue(session.id)
        assert check.can_continue is False
        assert check.reason == "Session is stopped"

    def test_human_gate_fires_at_three(self, controller, make_change):
        """Three iterations force a human review even with low confidence."""
        session = controller.start_session("Polish", [], [])
        for _ in range(2):
            _propose(controller, session.id, make_change, confidence=0.55)
        assert controller.can_continue(session.id).can_continue is True

        _propose(controller, session.id, make_change, confidence=0.55)
        check = controller.can_continue(session.id)

        assert check.can_continue is False
        assert check.rule is StopRule.HUMAN_GATE
        assert "Awaiting human review" in check.reason

    def test_confidence_threshold(self, controller, make_change):
        """A confident proposal is ready for review."""
        session = controller.start_session("Polish", [], [])
        _propose(controller, session.id, make_change, confidence=0.9)

        check = controller.can_continue(session.id)
        assert check.can_continue is False
        assert check.rule is StopRule.CONFIDENCE_THRESHOLD
        assert check.reason.startswith("Confidence 0.90 exceeds threshold 0.85")

    def test_confidence_threshold_is_inclusive(self, controller, make_change):
        """Exactly 0.85 stops the loop."""
        session = controller.start_session("Polish", [], [])
        _propose(controller, session.id, make_change, confidence=0.85)

        assert controller.can_continue(session.id).rule is StopRule.CONFIDENCE_THRESHOLD

    def test_below_threshold_continues(self, controller, make_change):
        """0.84 leaves room for another iteration."""
        session = controller.start_session("Polish", [], [])
        _propose(controller, session.id, make_change, confidence=0.84)

        assert controller.can_continue(session.id).can_continue is True

    def test_revising_waives_gate(self, controller, make_change):
        """A revision request lets the loop pass the gate."""
        session = controller.start_session("Polish", [], [])
        proposals = [_propose(controller, session.id, make_change) for _ in range(3)]
        assert controller.can_continue(session.id).rule is StopRule.HUMAN_GATE

        controller.request_revision(session.id, proposals[-1].id, "Tighten spacing")

        assert controller.can_continue(session.id).can_continue is True

    def test_absolute_limit_beats_revising(self, controller, make_change):
        """The absolute cap holds even while revising."""
        session = controller.start_session("Polish", [], [], max_iterations=10)
        proposals = [_propose(controller, session.id, make_change) for _ in range(10)]
        controller.request_revision(session.id, proposals[-1].id, "One more pass")

        check = controller.can_continue(session.id)
        assert check.can_continue is False
        assert check.rule is StopRule.ABSOLUTE_LIMIT
        assert "Absolute iteration limit reached (10)" in check.reason

    def test_terminal_beats_absolute_limit(self, controller, make_change):
        """Terminal status is reported before the iteration cap."""
        session = controller.start_session("Polish", [], [])
        proposals = [_propose(controller, session.id, make_change) for _ in range(10)]
        controller.approve_proposal(session.id, proposals[-1].id)

        assert controller.can_continue(session.id).rule is StopRule.SESSION_TERMINAL

    def test_gate_beats_confidence(self, controller, make_change):
        """At the gate, the gate reason is reported even for confident proposals."""
        session = controller.start_session("Polish", [], [])
        for _ in range(3):
            _propose(controller, session.id, make_change, confidence=0.95)

        assert controller.can_continue(session.id).rule is StopRule.HUMAN_GATE

    def test_stops_are_counted(self, controller, metrics):
        """Negative checks are recorded by rule."""
        controller.can_continue("session-missing")
        controller.can_continue("session-missing")

        assert metrics.stops[StopRule.SESSION_NOT_FOUND].value == 2


class TestAddProposal:
    """Tests for admitting proposals."""

    def test_unknown_session(self, controller, make_change):
        """Unknown sessions yield no proposal."""
        assert _propose(controller, "session-missing", make_change) is None

    def test_low_confidence_is_discarded(self, controller, make_change, metrics):
        """0.49 is discarded without consuming an iteration."""
        session = controller.start_session("Polish", [], [])

        assert _propose(controller, session.id, make_change, confidence=0.49) is None
        assert session.current_iteration == 0
        assert session.proposals == []
        assert session.status is SessionStatus.PLANNING
        assert metrics.proposals_discarded.value == 1

    def test_minimum_confidence_is_accepted(self, controller, make_change):
        """0.50 is admitted."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change, confidence=0.50)

        assert proposal is not None
        assert session.current_iteration == 1

    def test_builds_pending_proposal(self, controller, make_change):
        """The proposal snapshots the session and starts pending."""
        session = controller.start_session("Fix empty states", ["a.tsx"], [])
        proposal = _propose(controller, session.id, make_change, confidence=0.7)

        assert proposal.status is ProposalStatus.PENDING
        assert proposal.session_id == session.id
        assert proposal.objective == "Fix empty states"
        assert proposal.iteration == 1
        assert proposal.max_iterations == 3
        assert proposal.confidence == 0.7
        assert proposal.principles_applied == ["Prefer clarity over decoration"]
        assert proposal.human_feedback is None
        assert proposal.id.startswith("proposal-")
        assert session.status is SessionStatus.AWAITING_REVIEW
        assert session.latest_proposal is proposal

    def test_iterations_are_numbered(self, controller, make_change):
        """Each admitted proposal takes the next iteration number."""
        session = controller.start_session("Polish", [], [])
        numbers = [_propose(controller, session.id, make_change).iteration for _ in range(3)]
        assert numbers == [1, 2, 3]

    def test_changes_are_truncated(self, controller, make_change, metrics):
        """Extra file changes are dropped, keeping the first five."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change, n_changes=7)

        assert [c.file_path for c in proposal.changes] == [f"src/file_{i}.tsx" for i in range(5)]
        assert metrics.changes_truncated.value == 2

    def test_truncation_applies_before_discard(self, controller, make_change):
        """Oversized low-confidence proposals are still just discarded."""
        session = controller.start_session("Polish", [], [])
        assert _propose(controller, session.id, make_change, confidence=0.3, n_changes=9) is None

    def test_accepts_mapping_changes(self, controller):
        """Plain dicts are converted to file changes."""
        session = controller.start_session("Polish", [], [])
        proposal = controller.add_proposal(
            session.id,
            [{
                "file_path": "a.tsx",
                "original_content": "",
                "proposed_content": "<A />",
                "diff_summary": "New component",
                "change_type": "component",
            }],
            "reasoning",
            "notes",
            0.6,
            [],
        )

        assert isinstance(proposal.changes[0], FileChange)
        assert proposal.changes[0].change_type.value == "component"

    def test_snapshot_survives_revision(self, controller, make_change):
        """A proposal keeps the budget it was created under."""
        session = controller.start_session("Polish", [], [])
        first = _propose(controller, session.id, make_change)
        controller.request_revision(session.id, first.id, "More contrast")

        assert session.max_iterations == 4
        assert first.max_iterations == 3

    def test_iteration_never_exceeds_cap(self, controller, make_change, metrics):
        """Calls past the absolute cap are refused."""
        session = controller.start_session("Polish", [], [], max_iterations=20)
        results = [_propose(controller, session.id, make_change, confidence=0.9) for _ in range(11)]

        assert all(p is not None for p in results[:10])
        assert results[10] is None
        assert session.current_iteration == 10
        assert metrics.proposals_refused.value == 1

    def test_confident_first_proposal_stops_loop(self, controller, make_change):
        """With 0.9 confidence, the threshold fires after the very first proposal."""
        session = controller.start_session("Polish", [], [], max_iterations=20)
        assert session.max_iterations == 10

        _propose(controller, session.id, make_change, confidence=0.9)
        check = controller.can_continue(session.id)

        assert check.rule is StopRule.CONFIDENCE_THRESHOLD

    @pytest.mark.parametrize("decision", ["approve", "reject"])
    def test_terminal_session_refuses_proposals(self, controller, make_change, decision):
        """No proposals after the session ends."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change)
        if decision == "approve":
            controller.approve_proposal(session.id, proposal.id)
        else:
            controller.reject_proposal(session.id, proposal.id, "No")

        assert _propose(controller, session.id, make_change) is None
        assert session.current_iteration == 1

    def test_oldest_proposals_are_evicted(self, controller, make_change, metrics):
        """Only the most recent twenty proposals are retained."""
        controller._limits = replace(HARD_LIMITS, absolute_max_iterations=30)
        session = controller.start_session("Polish", [], [], max_iterations=30)
        proposals = [_propose(controller, session.id, make_change) for _ in range(25)]

        assert len(session.proposals) == 20
        assert session.proposals[0] is proposals[5]
        assert session.proposals[-1] is proposals[-1]
        assert session.find_proposal(proposals[0].id) is None
        assert metrics.proposals_evicted.value == 5


class TestDecisions:
    """Tests for approve, reject and revise."""

    @pytest.fixture
    def pending(self, controller, make_change):
        session = controller.start_session("Polish", ["a.tsx"], [])
        proposal = _propose(controller, session.id, make_change)
        return session, proposal

    def test_approve(self, controller, pending):
        """Approval completes the session."""
        session, proposal = pending
        result = controller.approve_proposal(session.id, proposal.id)

        assert result is proposal
        assert proposal.status is ProposalStatus.APPROVED
        assert session.status is SessionStatus.COMPLETE
        assert session.ended_at is not None

    def test_reject(self, controller, pending):
        """Rejection stops the session and keeps the reason."""
        session, proposal = pending
        result = controller.reject_proposal(session.id, proposal.id, "Too many borders")

        assert result is proposal
        assert proposal.status is ProposalStatus.REJECTED
        assert proposal.human_feedback == "Too many borders"
        assert session.status is SessionStatus.STOPPED
        assert session.ended_at is not None

    @pytest.mark.parametrize("method", ["approve", "reject", "revise"])
    def test_unknown_ids(self, controller, pending, method):
        """Unknown session or proposal ids return None."""
        session, proposal = pending
        calls = {
            "approve": lambda sid, pid: controller.approve_proposal(sid, pid),
            "reject": lambda sid, pid: controller.reject_proposal(sid, pid, "reason"),
            "revise": lambda sid, pid: controller.request_revision(sid, pid, "feedback"),
        }
        call = calls[method]

        assert call("session-missing", proposal.id) is None
        assert call(session.id, "proposal-missing") is None
        assert session.status is SessionStatus.AWAITING_REVIEW

    def test_no_revision_after_reject(self, controller, pending):
        """Stopped sessions have no way back to revising."""
        session, proposal = pending
        controller.reject_proposal(session.id, proposal.id, "No")

        assert controller.request_revision(session.id, proposal.id, "Try again") is None
        assert session.status is SessionStatus.STOPPED
        assert proposal.status is ProposalStatus.REJECTED

    def test_no_approval_after_reject(self, controller, pending):
        """A stopped session cannot become complete."""
        session, proposal = pending
        controller.reject_proposal(session.id, proposal.id, "No")

        assert controller.approve_proposal(session.id, proposal.id) is None
        assert session.status is SessionStatus.STOPPED

    def test_no_reject_after_approve(self, controller, pending):
        """A complete session cannot be stopped."""
        session, proposal = pending
        controller.approve_proposal(session.id, proposal.id)

        assert controller.reject_proposal(session.id, proposal.id, "Changed my mind") is None
        assert session.status is SessionStatus.COMPLETE
        assert proposal.status is ProposalStatus.APPROVED

    def test_revision(self, controller, pending):
        """Revision records feedback and reopens iteration."""
        session, proposal = pending
        result = controller.request_revision(session.id, proposal.id, "Use the spacing scale")

        assert result.proposal is proposal
        assert proposal.status is ProposalStatus.REVISION
        assert proposal.human_feedback == "Use the spacing scale"
        assert session.status is SessionStatus.REVISING
        assert session.ended_at is None
        assert result.can_continue is True
        assert result.reason == "OK"

    def test_revision_budget(self, controller, make_change):
        """Budget becomes current iteration plus the gate."""
        session = controller.start_session("Polish", [], [])
        proposals = [_propose(controller, session.id, make_change) for _ in range(4)]
        controller.request_revision(session.id, proposals[-1].id, "Again")

        assert session.current_iteration == 4
        assert session.max_iterations == 7

    def test_revision_budget_is_capped(self, controller, make_change):
        """Budget never passes the absolute cap."""
        session = controller.start_session("Polish", [], [])
        proposals = [_propose(controller, session.id, make_change) for _ in range(9)]
        controller.request_revision(session.id, proposals[-1].id, "Again")

        assert session.max_iterations == 10

    def test_revision_of_confident_proposal(self, controller, make_change):
        """Revising a confident proposal still reports the threshold."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change, confidence=0.92)
        result = controller.request_revision(session.id, proposal.id, "Different direction")

        assert result.can_continue is False
        assert result.check.rule is StopRule.CONFIDENCE_THRESHOLD

    def test_revision_cycle(self, controller, make_change):
        """A proposal after a revision returns the session to review."""
        session = controller.start_session("Polish", [], [])
        first = _propose(controller, session.id, make_change)
        controller.request_revision(session.id, first.id, "Again")
        second = _propose(controller, session.id, make_change)

        assert session.status is SessionStatus.AWAITING_REVIEW
        assert second.iteration == 2
        assert second.max_iterations == 4

    def test_decision_metrics(self, controller, make_change, metrics):
        """Decisions are counted and the active gauge follows terminal states."""
        a = controller.start_session("A", [], [])
        b = controller.start_session("B", [], [])
        pa = _propose(controller, a.id, make_change)
        pb = _propose(controller, b.id, make_change)
        assert metrics.active_sessions.value == 2

        controller.request_revision(a.id, pa.id, "Again")
        controller.approve_proposal(a.id, pa.id)
        controller.reject_proposal(b.id, pb.id, "No")

        assert metrics.revisions.value == 1
        assert metrics.approvals.value == 1
        assert metrics.rejections.value == 1
        assert metrics.active_sessions.value == 0


class TestMarkApplied:
    """Tests for recording written-out proposals."""

    def test_approved_becomes_applied(self, controller, make_change):
        """Approved proposals can be marked applied."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change)
        controller.approve_proposal(session.id, proposal.id)

        assert controller.mark_applied(session.id, proposal.id) is proposal
        assert proposal.status is ProposalStatus.APPLIED
        assert session.status is SessionStatus.COMPLETE

    def test_pending_cannot_be_applied(self, controller, make_change):
        """Only approved proposals are applied."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change)

        assert controller.mark_applied(session.id, proposal.id) is None
        assert proposal.status is ProposalStatus.PENDING


class TestSessionSummary:
    """Tests for the session log entry."""

    def test_unknown_session(self, controller):
        assert controller.get_session_summary("session-missing") is None

    def test_counts_and_learnings(self, controller, make_change):
        """Rejections come first, then revisions, each in proposal order."""
        session = controller.start_session("Fix empty states", ["a.tsx", "b.tsx"], [])
        p1 = _propose(controller, session.id, make_change)
        controller.request_revision(session.id, p1.id, "Too dense")
        p2 = _propose(controller, session.id, make_change)
        controller.request_revision(session.id, p2.id, "Wrong accent color")
        p3 = _propose(controller, session.id, make_change)
        controller.reject_proposal(session.id, p3.id, "Breaks the grid")

        summary = controller.get_session_summary(session.id)

        assert summary.session_id == session.id
        assert summary.date == session.started_at.isoformat()
        assert summary.objective == "Fix empty states"
        assert summary.files_scoped == ["a.tsx", "b.tsx"]
        assert summary.proposals_made == 3
        assert summary.proposals_accepted == 0
        assert summary.proposals_rejected == 1
        assert summary.proposals_revised == 2
        assert summary.iterations == 3
        assert summary.learnings == [
            "Rejected: Breaks the grid",
            "Revised because: Too dense",
            "Revised because: Wrong accent color",
        ]

    def test_approved_session(self, controller, make_change):
        """An approved session has no learnings."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change)
        controller.approve_proposal(session.id, proposal.id)

        summary = controller.get_session_summary(session.id)
        assert summary.proposals_accepted == 1
        assert summary.learnings == []

    def test_to_dict(self, controller, make_change):
        """Serialized summary uses the session log field names."""
        session = controller.start_session("Polish", [], [])
        summary = controller.get_session_summary(session.id).to_dict()

        assert set(summary) == {
            "session_id", "date", "objective", "files_scoped", "proposals_made",
            "proposals_accepted", "proposals_rejected", "proposals_revised",
            "iterations", "learnings",
        }


class TestStatus:
    """Tests for status accessors."""

    def test_hard_limits(self, controller):
        """The limit table is exposed verbatim."""
        assert controller.get_hard_limits() == {
            "max_iterations_before_gate": 3,
            "absolute_max_iterations": 10,
            "confidence_stop_threshold": 0.85,
            "minimum_proposal_confidence": 0.50,
            "max_files_per_proposal": 5,
            "max_proposals_per_session": 20,
        }

    def test_hard_limits_are_a_copy(self, controller):
        """Mutating the returned table changes nothing."""
        limits = controller.get_hard_limits()
        limits["absolute_max_iterations"] = 100

        assert controller.get_hard_limits()["absolute_max_iterations"] == 10

    def test_get_status(self, controller):
        """Status reports the active session and count."""
        session = controller.start_session("Polish", [], [])
        status = controller.get_status().to_dict()

        assert status["active_session"] == session.id
        assert status["total_sessions"] == 1
        assert status["hard_limits"]["max_files_per_proposal"] == 5

    def test_describe_session(self, controller, make_change):
        """Session snapshot includes the latest proposal and the check."""
        session = controller.start_session("Polish", [], [])
        proposal = _propose(controller, session.id, make_change, confidence=0.9)

        view = controller.describe_session(session.id)

        assert view["status"] == "awaiting_review"
        assert view["current_iteration"] == 1
        assert view["proposals_count"] == 1
        assert view["can_continue"] is False
        assert view["latest_proposal"] == {"id": proposal.id, "confidence": 0.9, "status": "pending"}

    def test_describe_unknown_session(self, controller):
        assert controller.describe_session("session-missing") is None
