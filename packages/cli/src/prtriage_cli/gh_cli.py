"""Calls into the GitHub CLI (gh), for users who already authenticated it."""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)


def run_gh(*args: str, timeout: float = 15) -> str | None:
    """Run ``gh <args>`` and return its stripped stdout.

    None when gh is missing, times out, exits non-zero or prints nothing.
    """
    try:
        result = subprocess.run(["gh", *args], capture_output=True, text=True, timeout=timeout)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("gh %s unavailable: %s", " ".join(args), type(e).__name__)
        return None
    if result.returncode != 0:
        logger.debug("gh %s exited %d: %s", " ".join(args), result.returncode, (result.stderr or "").strip())
        return None
    return result.stdout.strip() or None
