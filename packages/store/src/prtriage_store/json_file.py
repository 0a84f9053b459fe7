"""JsonFileStore: one pretty-printed JSON file per pull request.

Layout::

    <root>/<owner>-<repo>-<number>/pr-state.json

The file holds a single ReviewState object. Writes go through a temporary
file in the same directory followed by os.replace(), so a crash mid-write
leaves the previous state intact.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from prtriage_store.base import BaseStateStore
from prtriage_store.models import ReviewState

logger = logging.getLogger(__name__)

_STATE_FILENAME = "pr-state.json"
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


def ref_to_dirname(ref: str) -> str:
    """``owner/repo#12`` → ``owner-repo-12``."""
    return _UNSAFE_CHARS_RE.sub("-", ref).strip("-")


class JsonFileStore(BaseStateStore):
    """Stores triage state as JSON files under a root directory.

    The root defaults to ``~/.cursor/reviews``; configure via .prtriage.yml:
    ``state_dir: /path/to/reviews``.
    """

    def __init__(self, root: str | os.PathLike = "~/.cursor/reviews"):
        self._root = Path(root).expanduser()

    def path_for(self, ref: str) -> Path:
        return self._root / ref_to_dirname(ref) / _STATE_FILENAME

    def location(self, ref: str) -> str:
        return str(self.path_for(ref))

    def _read(self, ref: str) -> ReviewState | None:
        path = self.path_for(ref)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return ReviewState.from_dict(json.load(f))
        except (OSError, ValueError, AttributeError, TypeError) as e:
            # json.JSONDecodeError is a ValueError subclass.
            logger.warning("Ignoring unreadable state file %s (%s): %s", path, type(e).__name__, e)
            return None

    def _write(self, ref: str, state: ReviewState) -> None:
        path = self.path_for(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".pr-state.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved state for %s to %s", ref, path)
