"""
Design Memory — Durable record of human judgments and derived views.

Wraps a DocumentStore with the operations the orchestrator needs:
recording decisions and sessions, adding principles, and building the
design context that constrains the next round of generation.

Every write is a full read-modify-write of the document. The updated
document is persisted before it replaces the in-process copy, so a failed
write leaves both the file and this object at the last durable state.
"""

import json
import math
from collections import Counter
from collections.abc import Callable, Mapping
from typing import Any

from designgate.memory.document import (
    ApprovedPattern,
    DesignMemoryDocument,
    RejectedPattern,
    SessionLogEntry,
    utc_timestamp,
)
from designgate.memory.storage import DocumentStore
from designgate.observability import get_logger
from designgate.vocabulary import ChangeType, MemorySection

logger = get_logger("memory")


# Recent patterns included in the design context
CONTEXT_PATTERN_WINDOW = 20

# Leading characters of a rejected description used for conflict matching
CONFLICT_PREFIX_LENGTH = 30


class MemoryStore:
    """
    Design memory service over a document backend.

    The document is loaded at construction; a missing document raises
    MemoryNotInitializedError rather than starting from an empty memory.
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._document: DesignMemoryDocument
        self.load()

    # ---- Read operations ----

    def load(self) -> DesignMemoryDocument:
        """Read the backing document, replacing the in-process copy."""
        document = self._store.read()
        logger.debug(
            f"Loaded design memory from {self._store.location} "
            f"({len(document.approved_patterns)} approved, "
            f"{len(document.rejected_patterns)} rejected)"
        )
        self._document = document
        return document

    @property
    def memory(self) -> DesignMemoryDocument:
        return self._document

    @property
    def principles(self) -> list[str]:
        return self._document.principles

    @property
    def component_patterns(self) -> dict[str, Any]:
        return self._document.component_patterns

    @property
    def color_palette(self) -> dict[str, Any]:
        return self._document.color_palette

    @property
    def typography(self) -> dict[str, Any]:
        return self._document.typography

    @property
    def rejected_patterns(self) -> list[RejectedPattern]:
        return self._document.rejected_patterns

    @property
    def approved_patterns(self) -> list[ApprovedPattern]:
        return self._document.approved_patterns

    @property
    def acceptance_rate(self) -> float:
        return self._document.meta.acceptance_rate

    def build_design_context(self) -> str:
        """
        Build the constraint bundle injected into the generator.

        Sections appear in a fixed order and are omitted when empty. Only
        the most recent rejected and approved patterns are included, in
        the order they were recorded.
        """
        m = self._document
        sections: list[str] = ["# DESIGN MEMORY — Follow These Constraints"]

        if m.principles:
            sections.append("\n## Principles (MUST follow)")
            sections.extend(f"{i}. {p}" for i, p in enumerate(m.principles, start=1))

        for title, blob in (
            ("Component Patterns", m.component_patterns),
            ("Color Palette", m.color_palette),
            ("Typography", m.typography),
        ):
            if blob:
                sections.append(f"\n## {title}")
                sections.append(json.dumps(blob, indent=2))

        if m.rejected_patterns:
            sections.append("\n## REJECTED Patterns (NEVER do these)")
            for rp in m.rejected_patterns[-CONTEXT_PATTERN_WINDOW:]:
                sections.append(f"- {rp.description} — Rejected because: {rp.reason}")

        if m.approved_patterns:
            sections.append("\n## APPROVED Patterns (User likes these)")
            for ap in m.approved_patterns[-CONTEXT_PATTERN_WINDOW:]:
                sections.append(f"- {ap.description} ({ap.change_type.value})")

        return "\n".join(sections)

    # ---- Write operations ----

    def _commit(self, mutate: Callable[[DesignMemoryDocument], None]) -> None:
        document = self._document.model_copy(deep=True)
        mutate(document)
        document.meta.last_updated = utc_timestamp()
        self._store.write(document)
        self._document = document

    @staticmethod
    def _recalculate_acceptance_rate(document: DesignMemoryDocument) -> None:
        approved = len(document.approved_patterns)
        total = approved + len(document.rejected_patterns)
        if total == 0:
            document.meta.acceptance_rate = 0.0
            return
        # Halves round up.
        document.meta.acceptance_rate = math.floor(approved / total * 100 + 0.5) / 100

    def record_approval(
        self,
        file: str,
        description: str,
        change_type: ChangeType | str,
    ) -> ApprovedPattern:
        """Record an approved change and persist immediately."""
        pattern = ApprovedPattern(file=file, description=description, change_type=change_type)

        def mutate(document: DesignMemoryDocument) -> None:
            document.approved_patterns.append(pattern)
            document.meta.total_proposals += 1
            self._recalculate_acceptance_rate(document)

        self._commit(mutate)
        logger.info(
            f"Recorded approval for {file} ({pattern.change_type.value}); "
            f"acceptance rate {self.acceptance_rate:.2f}"
        )
        return pattern

    def record_rejection(self, file: str, description: str, reason: str) -> RejectedPattern:
        """Record a rejected change and persist immediately."""
        pattern = RejectedPattern(file=file, description=description, reason=reason)

        def mutate(document: DesignMemoryDocument) -> None:
            document.rejected_patterns.append(pattern)
            document.meta.total_proposals += 1
            self._recalculate_acceptance_rate(document)

        self._commit(mutate)
        logger.info(
            f"Recorded rejection for {file}; acceptance rate {self.acceptance_rate:.2f}"
        )
        return pattern

    def record_session(self, summary: SessionLogEntry | Mapping[str, Any] | Any) -> SessionLogEntry:
        """
        Append a session summary to the log.

        Accepts a SessionLogEntry, a mapping, or any object with to_dict()
        (such as the controller's SessionSummary).
        """
        if isinstance(summary, SessionLogEntry):
            entry = summary
        elif isinstance(summary, Mapping):
            entry = SessionLogEntry.model_validate(dict(summary))
        else:
            entry = SessionLogEntry.model_validate(summary.to_dict())

        def mutate(document: DesignMemoryDocument) -> None:
            document.session_log.append(entry)
            document.meta.total_sessions += 1

        self._commit(mutate)
        logger.info(f"Recorded session {entry.session_id} ({entry.iterations} iterations)")
        return entry

    def add_principle(self, principle: str) -> bool:
        """Add a principle unless an identical one exists. Returns True if added."""
        if principle in self._document.principles:
            return False

        self._commit(lambda document: document.principles.append(principle))
        logger.info(f"Added principle #{len(self._document.principles)}")
        return True

    # ---- Analysis ----

    def get_most_accepted_change_types(self) -> list[dict[str, Any]]:
        """
        Change types ranked by approval count, descending.

        Ties keep the order in which each type was first approved.
        """
        counts = Counter(ap.change_type for ap in self._document.approved_patterns)
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [{"type": change_type.value, "count": count} for change_type, count in ranked]

    def get_most_rejected_files(self) -> list[dict[str, Any]]:
        """Files ranked by rejection count, descending."""
        counts = Counter(rp.file for rp in self._document.rejected_patterns)
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [{"file": file, "count": count} for file, count in ranked]

    def conflicts_with_rejected(self, description: str) -> RejectedPattern | None:
        """
        Early-warning check against previously rejected patterns.

        Matches when the first 30 characters of a rejected description
        (case-insensitive) occur anywhere in ``description``. Loose on
        purpose; misses are expected.
        """
        candidate = description.lower()
        for rp in self._document.rejected_patterns:
            if rp.description.lower()[:CONFLICT_PREFIX_LENGTH] in candidate:
                return rp
        return None

    def get_stats(self) -> dict[str, Any]:
        """Lifetime counters plus the derived rankings."""
        meta = self._document.meta
        return {
            "total_sessions": meta.total_sessions,
            "total_proposals": meta.total_proposals,
            "acceptance_rate": meta.acceptance_rate,
            "last_updated": meta.last_updated,
            "most_accepted_types": self.get_most_accepted_change_types(),
            "most_rejected_files": self.get_most_rejected_files(),
        }

    def get_section(self, section: MemorySection | str = MemorySection.ALL) -> Any:
        """Return one view of the memory as JSON-compatible data."""
        section = MemorySection(section)
        data = self._document.to_dict()

        if section is MemorySection.PRINCIPLES:
            return data["principles"]
        if section is MemorySection.PATTERNS:
            return data["component_patterns"]
        if section is MemorySection.COLORS:
            return data["color_palette"]
        if section is MemorySection.TYPOGRAPHY:
            return data["typography"]
        if section is MemorySection.REJECTED:
            return data["rejected_patterns"]
        if section is MemorySection.APPROVED:
            return data["approved_patterns"]
        if section is MemorySection.STATS:
            return self.get_stats()
        return data


def create_design_memory(store: DocumentStore) -> MemoryStore:
    """Factory for the design memory service."""
    return MemoryStore(store)
