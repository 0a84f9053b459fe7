"""Pull request context resolution.

Resolution order (stops at first success):
  1. An explicit PR URL argument
  2. Explicit --owner / --repo / --number options
  3. `gh pr view` for the branch checked out in the current directory
"""

from __future__ import annotations

import json
import logging

import click

from prtriage_cli.gh_cli import run_gh
from prtriage_core.gh.pull_request import PullRequestRef, parse_pr_url

logger = logging.getLogger(__name__)


def detect_current_pr() -> PullRequestRef | None:
    """Return the PR of the current branch according to the gh CLI, or None."""
    output = run_gh("pr", "view", "--json", "number,url")
    if output is None:
        return None
    try:
        return parse_pr_url(json.loads(output)["url"])
    except (ValueError, KeyError, TypeError) as e:
        logger.debug("Unexpected gh pr view output (%s): %r", type(e).__name__, output[:200])
        return None


def resolve_pr_ref(
    pr_url: str | None = None,
    owner: str | None = None,
    repo: str | None = None,
    number: int | None = None,
) -> PullRequestRef | None:
    """Return the PR to work on, or None when no source yields one.

    A malformed ``pr_url`` raises ValueError rather than silently falling
    back to the current branch.
    """
    if pr_url:
        return parse_pr_url(pr_url)
    if owner and repo and number:
        return PullRequestRef(owner=owner, repo=repo, number=number)
    return detect_current_pr()


def require_pr_ref(pr_url: str | None = None, **explicit) -> PullRequestRef:
    """resolve_pr_ref() for commands: unresolvable context is a usage error."""
    try:
        ref = resolve_pr_ref(pr_url, **explicit)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="PR_URL")
    if ref is None:
        raise click.UsageError(
            "Could not determine the pull request. Pass a PR URL "
            "(https://github.com/<owner>/<repo>/pull/<n>) or run inside a branch with an open PR."
        )
    return ref
