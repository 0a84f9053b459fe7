"""Reconciliation state data models.

Decoupled from prtriage_core so the store layer can be used independently:
the state only knows about ids and statuses, never about how those ids were
extracted from comment bodies.
"""

from __future__ import annotations

from dataclasses import dataclass, field

STATUSES = ("done", "skip", "later")
KINDS = ("thread", "nitpick")


@dataclass
class StatusEntry:
    """Operator decision recorded for one thread or nitpick."""

    status: str
    note: str | None = None

    def to_dict(self) -> dict:
        d = {"status": self.status}
        if self.note is not None:
            d["note"] = self.note
        return d

    @classmethod
    def from_dict(cls, d: dict) -> StatusEntry:
        return cls(status=d.get("status", ""), note=d.get("note"))


@dataclass
class ReviewState:
    """Durable triage record for a single pull request.

    Keys are only ever added or overwritten; mark() never touches entries
    other than the one it was asked to set.
    """

    pr: str = ""
    updated_at: str = ""  # ISO-8601 UTC timestamp, refreshed by BaseStateStore.save()
    threads: dict[str, StatusEntry] = field(default_factory=dict)
    nitpicks: dict[str, StatusEntry] = field(default_factory=dict)

    def entries(self, kind: str) -> dict[str, StatusEntry]:
        if kind == "thread":
            return self.threads
        if kind == "nitpick":
            return self.nitpicks
        raise ValueError(f"Unknown kind: {kind!r}. Choose 'thread' or 'nitpick'.")

    def mark(self, kind: str, item_id: str, status: str, note: str | None = None) -> None:
        """Record ``status`` for one item, replacing any earlier decision for it."""
        self.entries(kind)[item_id] = StatusEntry(status=status, note=note)

    def status_of(self, kind: str, item_id: str) -> str | None:
        entry = self.entries(kind).get(item_id)
        return entry.status if entry else None

    def to_dict(self) -> dict:
        return {
            "pr": self.pr,
            "updatedAt": self.updated_at,
            "threads": {k: v.to_dict() for k, v in self.threads.items()},
            "nitpicks": {k: v.to_dict() for k, v in self.nitpicks.items()},
        }

    @classmethod
    def from_dict(cls, d: dict) -> ReviewState:
        if not isinstance(d, dict):
            raise ValueError("state must be a JSON object")
        return cls(
            pr=d.get("pr", "") or "",
            updated_at=d.get("updatedAt", "") or "",
            threads={k: StatusEntry.from_dict(v) for k, v in (d.get("threads") or {}).items()},
            nitpicks={k: StatusEntry.from_dict(v) for k, v in (d.get("nitpicks") or {}).items()},
        )
