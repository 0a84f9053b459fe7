"""Mutation executor: replies, resolutions and local status marks.

Each MutationRequest runs the same protocol, independently of the others:

    reply (threads only) → resolve (threads only) → mark in ReviewState

A remote failure stops the remaining steps of that request and is recorded
in its MutationResult; sibling requests still run and nothing already
applied is rolled back.

Two strategies share the ExecutionStrategy interface:
  - SequentialStrategy: one request at a time with a pause in between, for
    rate-limited remotes.
  - ConcurrentStrategy: fixed-width batches on a thread pool; a batch starts
    only once every result of the previous one is in.

Requests in one batch must have distinct ids. Each request then marks its
own key in the state, so the concurrent strategy needs no lock.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable

from prtriage_store.models import KINDS, STATUSES, ReviewState

logger = logging.getLogger(__name__)

DEFAULT_PAUSE_SECONDS = 0.5
DEFAULT_CONCURRENCY = 3


@dataclass(frozen=True)
class MutationRequest:
    id: str  # review thread node id or nitpick id
    kind: str  # "thread" | "nitpick"
    reply: str | None = None
    resolve: bool = False
    status: str | None = None
    note: str | None = None

    def __post_init__(self):
        # apply_request marks outside its error handling; an invalid value must fail here.
        if self.kind not in KINDS:
            raise ValueError(f"mutation request {self.id!r} has invalid type {self.kind!r}")
        if self.status is not None and self.status not in STATUSES:
            raise ValueError(f"mutation request {self.id!r} has invalid status {self.status!r}")

    @classmethod
    def from_dict(cls, d: dict) -> MutationRequest:
        """Build a request from its JSON form (``type`` carries the kind)."""
        if not isinstance(d, dict):
            raise ValueError(f"mutation request must be an object, got {type(d).__name__}")
        item_id = d.get("id")
        if not item_id:
            raise ValueError("mutation request is missing 'id'")
        resolve = d.get("resolve")
        if resolve is None:
            resolve = False
        if not isinstance(resolve, bool):
            raise ValueError(f"mutation request {item_id!r} has non-boolean resolve {resolve!r}")
        return cls(
            id=str(item_id),
            kind=d.get("type", d.get("kind")),
            reply=d.get("reply"),
            resolve=resolve,
            status=d.get("status"),
            note=d.get("note"),
        )


@dataclass(frozen=True)
class MutationResult:
    id: str
    ok: bool
    error: str | None = None

    def to_dict(self) -> dict:
        d = {"id": self.id, "ok": self.ok}
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass
class BatchOutcome:
    """Everything a caller needs after a run: per-request results and the updated state."""

    state: ReviewState
    results: list[MutationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }


class MutationAPI(ABC):
    """Remote side of a mutation. Implementations raise on failure."""

    @abstractmethod
    def add_reply(self, thread_id: str, body: str) -> None:
        """Post ``body`` as a reply in the review thread."""

    @abstractmethod
    def resolve_thread(self, thread_id: str) -> None:
        """Mark the review thread as resolved."""


ApplyFn = Callable[[MutationRequest], MutationResult]
ProgressFn = Callable[[int, int, MutationRequest, MutationResult], None]


def apply_request(request: MutationRequest, state: ReviewState, api: MutationAPI) -> MutationResult:
    """Run the reply → resolve → mark protocol for one request."""
    try:
        if request.reply and request.kind == "thread":
            api.add_reply(request.id, request.reply)
            logger.debug("Replied to %s", request.id)
        if request.resolve and request.kind == "thread":
            api.resolve_thread(request.id)
            logger.debug("Resolved %s", request.id)
    except Exception as e:
        logger.warning("Mutation for %s failed (%s): %s", request.id, type(e).__name__, e)
        return MutationResult(id=request.id, ok=False, error=str(e) or type(e).__name__)

    if request.kind == "nitpick" and (request.reply or request.resolve):
        logger.debug("Nitpick %s has no remote thread; reply/resolve ignored", request.id)
    if request.status:
        state.mark(request.kind, request.id, request.status, request.note)
    return MutationResult(id=request.id, ok=True)


class ExecutionStrategy(ABC):
    @abstractmethod
    def run(
        self,
        requests: list[MutationRequest],
        apply: ApplyFn,
        on_result: ProgressFn | None = None,
    ) -> list[MutationResult]:
        """Apply every request and return results in input order."""


class SequentialStrategy(ExecutionStrategy):
    """Strict input order with ``pause`` seconds between consecutive requests."""

    def __init__(self, pause: float = DEFAULT_PAUSE_SECONDS, sleep: Callable[[float], None] = time.sleep):
        self.pause = pause
        self._sleep = sleep

    def run(self, requests, apply, on_result=None):
        results: list[MutationResult] = []
        total = len(requests)
        for i, request in enumerate(requests):
            result = apply(request)
            results.append(result)
            if on_result is not None:
                on_result(i + 1, total, request, result)
            if i < total - 1 and self.pause > 0:
                self._sleep(self.pause)
        return results


class ConcurrentStrategy(ExecutionStrategy):
    """Consecutive batches of ``width`` requests, each dispatched concurrently."""

    def __init__(self, width: int = DEFAULT_CONCURRENCY):
        if width < 1:
            raise ValueError(f"concurrency width must be at least 1, got {width}")
        self.width = width

    def batches(self, requests: list[MutationRequest]) -> list[list[MutationRequest]]:
        return [requests[i : i + self.width] for i in range(0, len(requests), self.width)]

    def run(self, requests, apply, on_result=None):
        results: list[MutationResult] = []
        total = len(requests)
        with ThreadPoolExecutor(max_workers=self.width) as pool:
            for batch in self.batches(requests):
                # map() yields in submission order and only after each future finishes,
                # so the list() below is the batch barrier.
                batch_results = list(pool.map(apply, batch))
                for request, result in zip(batch, batch_results):
                    results.append(result)
                    if on_result is not None:
                        on_result(len(results), total, request, result)
        return results


def apply_mutations(
    requests: list[MutationRequest],
    state: ReviewState,
    api: MutationAPI,
    strategy: ExecutionStrategy | None = None,
    on_result: ProgressFn | None = None,
) -> BatchOutcome:
    """Apply ``requests`` with ``strategy`` and return the results with the updated state.

    ``state`` is owned by this call until it returns; persist ``outcome.state``
    afterwards. Defaults to ConcurrentStrategy.
    """
    strategy = strategy or ConcurrentStrategy()
    seen: set[str] = set()
    for request in requests:
        if request.id in seen:
            logger.warning("Request id %s appears more than once; side-effect order is not guaranteed", request.id)
        seen.add(request.id)

    results = strategy.run(requests, lambda request: apply_request(request, state, api), on_result)
    return BatchOutcome(state=state, results=results)
