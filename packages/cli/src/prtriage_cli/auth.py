"""GitHub token resolution.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable
  2. `gh auth token`, the session stored by `gh auth login`
"""

from __future__ import annotations

import logging
import os

from prtriage_cli.gh_cli import run_gh

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token, or None when neither source has one."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    token = run_gh("auth", "token", timeout=5)
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token
