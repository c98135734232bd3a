#!/usr/bin/env python3
"""
Demonstration: Guarded Design Loop

Shows how the session controller and the design memory bound an
automated improvement loop and learn from human decisions.

Demonstrates:
1. An unattended loop halting at the human review gate
2. A revision granting more iterations, then approval
3. A rejection feeding the conflict check of the next session
"""

import tempfile
from pathlib import Path

from designgate.memory import MemoryStore, create_file_store, initialize_memory
from designgate.session import FileChange, SessionController


def print_section(title: str):
    """Print a formatted section header."""
    print(f"\n{'=' * 80}")
    print(f"  {title}")
    print('=' * 80)


def change(summary: str, change_type: str = "spacing") -> FileChange:
    return FileChange(
        file_path="src/pages/Fleet.tsx",
        original_content="<WorkerGrid />",
        proposed_content="<WorkerGrid gap='md' />",
        diff_summary=summary,
        change_type=change_type,
    )


def demonstrate_gate(controller: SessionController):
    """An orchestrator that never asks a human stops after three iterations."""
    print_section("Part 1: Unattended Loop Hits the Gate")

    session = controller.start_session("Tidy worker grid spacing", ["src/pages/Fleet.tsx"], [])
    iteration = 0
    while True:
        check = controller.can_continue(session.id)
        if not check.can_continue:
            print(f"\n🛑 Stopped: {check.reason}")
            break
        iteration += 1
        controller.add_proposal(
            session.id, [change(f"Spacing pass {iteration}")], "Even rhythm", "Minor", 0.6, []
        )
        print(f"   Iteration {iteration} proposed")


def demonstrate_revision(controller: SessionController, memory: MemoryStore):
    """A revision reopens the loop; approval ends it and is remembered."""
    print_section("Part 2: Revise, Then Approve")

    session = controller.start_session("Fleet empty state", ["src/pages/Fleet.tsx"], [])
    first = controller.add_proposal(
        session.id, [change("Add empty state card", "empty_state")], "Guide the user", "Long copy", 0.7, []
    )
    result = controller.request_revision(session.id, first.id, "Shorter copy")
    print(f"\n✏️  Revision requested; can continue: {result.can_continue} "
          f"(budget {session.max_iterations})")

    second = controller.add_proposal(
        session.id, [change("Add compact empty state", "empty_state")], "Guide the user", "Tight", 0.9, []
    )
    print(f"   {controller.can_continue(session.id).reason}")

    approved = controller.approve_proposal(session.id, second.id)
    for c in approved.changes:
        memory.record_approval(c.file_path, c.diff_summary, c.change_type)
    memory.record_session(controller.get_session_summary(session.id))
    print(f"\n✅ Approved. Acceptance rate: {memory.acceptance_rate:.2f}")


def demonstrate_rejection(controller: SessionController, memory: MemoryStore):
    """A rejected pattern is screened out of the next session."""
    print_section("Part 3: Rejection Shapes the Next Session")

    session = controller.start_session("Brighten dashboard", [], [])
    proposal = controller.add_proposal(
        session.id, [change("Use neon gradient backgrounds on every panel", "color")], "Energy", "Loud", 0.75, []
    )
    controller.reject_proposal(session.id, proposal.id, "Off brand and distracting")
    for c in proposal.changes:
        memory.record_rejection(c.file_path, c.diff_summary, proposal.human_feedback)
    memory.record_session(controller.get_session_summary(session.id))

    candidate = "Use neon gradient backgrounds on every panel, but softer"
    conflict = memory.conflicts_with_rejected(candidate)
    print(f"\n⚠️  Candidate conflicts with: {conflict.description!r} ({conflict.reason})")
    print(f"📊 Stats: {memory.get_stats()}")

    print_section("Design Context")
    print(memory.build_design_context())


def main():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "design_memory.json"
        initialize_memory(path)
        memory = MemoryStore(create_file_store(path))
        controller = SessionController()

        demonstrate_gate(controller)
        demonstrate_revision(controller, memory)
        demonstrate_rejection(controller, memory)


if __name__ == "__main__":
    main()
