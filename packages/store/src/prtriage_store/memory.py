"""In-memory store for --no-save runs, where nothing may touch disk.

States are kept as serialized dicts so load() always hands out a fresh
object, the same way the file store does.
"""

from __future__ import annotations

from prtriage_store.base import BaseStateStore
from prtriage_store.models import ReviewState


class MemoryStore(BaseStateStore):
    """Keeps states for the lifetime of the process only."""

    def __init__(self):
        self._states: dict[str, dict] = {}

    def location(self, ref: str) -> str:
        return f"memory://{ref}"

    def _read(self, ref: str) -> ReviewState | None:
        data = self._states.get(ref)
        return ReviewState.from_dict(data) if data is not None else None

    def _write(self, ref: str, state: ReviewState) -> None:
        self._states[ref] = state.to_dict()
