"""Nitpick extraction from bot summary comments.

CodeRabbit-style summaries carry minor suggestions inside a collapsible
"Nitpick comments (N)" or "Additional comments (N)" section, grouped by file::

    <details><summary>🧹 Nitpick comments (2)</summary><blockquote>
    <details><summary>src/a.ts (2)</summary><blockquote>
    `42`: Prefer const.
    `50-52`: Extract helper.
    </blockquote></details>
    </blockquote></details>

Each backtick-quoted line marker becomes one Nitpick with a stable id, so a
status recorded today still applies after the bot rewrites its summary.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from prtriage_core.extract.blocks import find_balanced_blocks

if TYPE_CHECKING:
    from prtriage_store.models import ReviewState

logger = logging.getLogger(__name__)

NITPICK_SECTION_RE = re.compile(r"(nitpick|additional)\s+comments?", re.IGNORECASE)
_FILE_GROUP_RE = re.compile(r"(.*?) \((\d+)\)")
_ENTRY_RE = re.compile(r"`(\d+(?:-\d+)?)`:\s*(.*?)(?=`\d+|\Z)", re.DOTALL)
_BLOCKQUOTE_OPEN_RE = re.compile(r"^<blockquote>\s*")
_BLOCKQUOTE_CLOSE_RE = re.compile(r"\s*</blockquote>$")


@dataclass(frozen=True)
class Nitpick:
    id: str
    path: str
    line: str  # "42" or "42-47"
    content: str
    status: str | None = None

    def to_dict(self) -> dict:
        d = {"id": self.id, "path": self.path, "line": self.line, "content": self.content}
        if self.status is not None:
            d["status"] = self.status
        return d


def nitpick_id(path: str, line: str, content: str) -> str:
    """Return the stable identifier for a nitpick.

    ``path:line`` when the path is a real file path; otherwise the first 8 hex
    chars of the SHA-1 of the content. Labels mentioning "comments" come from
    nested meta sections rather than files, so they take the hash branch too.
    """
    if path and line and path != "unknown" and "comments" not in path.lower():
        return f"{path}:{line}"
    return hashlib.sha1(content.encode("utf-8")).hexdigest()[:8]


def parse_nitpicks(body: str) -> list[Nitpick]:
    """Return every nitpick in a bot comment body, in document order."""
    nitpicks: list[Nitpick] = []
    for section in find_balanced_blocks(body or "", NITPICK_SECTION_RE):
        for group in find_balanced_blocks(section.content):
            label_match = _FILE_GROUP_RE.search(group.label)
            if not label_match:
                logger.debug("Skipping nested block without a file label: %r", group.label[:60])
                continue
            path = label_match.group(1).strip()
            content = _BLOCKQUOTE_CLOSE_RE.sub("", _BLOCKQUOTE_OPEN_RE.sub("", group.content))
            for entry in _ENTRY_RE.finditer(content):
                line = entry.group(1)
                text = entry.group(2).strip()
                nitpicks.append(Nitpick(id=nitpick_id(path, line, text), path=path, line=line, content=text))
    return nitpicks


def with_status(nitpicks: list[Nitpick], state: ReviewState) -> list[Nitpick]:
    """Join the recorded status of each nitpick from ``state``."""
    return [replace(n, status=state.status_of("nitpick", n.id)) for n in nitpicks]
