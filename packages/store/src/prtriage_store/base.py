"""Abstract state store interface.

The CLI depends on BaseStateStore rather than a concrete backend, so the JSON
file store can be swapped for the in-memory one (--no-save runs, tests) without
touching command code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from prtriage_store.models import ReviewState


class BaseStateStore(ABC):
    """Pluggable persistence layer for per-PR triage state.

    ``ref`` is the discussion reference in ``owner/repo#number`` form.
    """

    def load(self, ref: str) -> ReviewState:
        """Return the persisted state for ``ref``.

        Falls back to an empty state when nothing was saved yet or the saved
        form cannot be parsed. Never raises: a broken cache must not block
        triage.
        """
        state = self._read(ref)
        return state if state is not None else ReviewState()

    def save(self, ref: str, state: ReviewState) -> None:
        """Refresh ``updated_at`` and persist the full state."""
        state.updated_at = datetime.now(timezone.utc).isoformat()
        self._write(ref, state)

    @abstractmethod
    def location(self, ref: str) -> str:
        """Human-readable location of the state for ``ref`` (path, URI, ...)."""

    @abstractmethod
    def _read(self, ref: str) -> ReviewState | None:
        """Return the stored state, or None if absent or unreadable."""

    @abstractmethod
    def _write(self, ref: str, state: ReviewState) -> None:
        """Persist ``state`` as-is."""
