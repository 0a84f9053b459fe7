"""Assemble the triage report for one pull request.

Pulls threads, bot summaries and human comments through GithubReviewClient,
sanitizes every body, extracts nitpicks and joins the local ReviewState so
items already handled (done / skip) drop out unless asked for.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from prtriage_core.extract.nitpicks import parse_nitpicks, with_status
from prtriage_core.extract.sanitize import build_rules, clean_comment_body

if TYPE_CHECKING:
    from prtriage_core.gh.pull_request import GithubReviewClient, PullRequestRef
    from prtriage_store.models import ReviewState

logger = logging.getLogger(__name__)

SECTIONS = ("threads", "nitpicks", "files", "summaries", "userComments")
_HANDLED = ("done", "skip")


@dataclass
class ReportOptions:
    show_all: bool = False
    include_done: bool = False
    with_resolved: bool = False
    only: list[str] = field(default_factory=list)  # empty = every section

    def wants(self, section: str) -> bool:
        return not self.only or section in self.only


@dataclass(frozen=True)
class RawComment:
    """A comment as returned by GitHub, flattened. Never modified."""

    id: str
    body: str
    author: str
    url: str
    created_at: str
    path: str | None = None
    line: int | None = None

    @classmethod
    def from_node(cls, node: dict) -> RawComment:
        return cls(
            id=node.get("id", ""),
            body=node.get("body") or "",
            author=(node.get("author") or {}).get("login", ""),
            url=node.get("url", ""),
            created_at=node.get("createdAt", ""),
            path=node.get("path"),
            line=node.get("line"),
        )


def collect_report(
    ref: PullRequestRef,
    client: GithubReviewClient,
    state: ReviewState,
    options: ReportOptions,
    config: dict,
    state_path: str = "",
) -> dict:
    """Return the JSON-serialisable triage report for ``ref``."""
    rules = build_rules(config.get("noise_rules"))
    max_length = config.get("max_body_length", 15000)

    def clean(body: str) -> str:
        return clean_comment_body(body, rules=rules, max_length=max_length)

    all_threads = client.fetch_threads(ref)
    files = client.fetch_files(ref) if options.wants("files") else []
    reviews = client.fetch_reviews(ref)
    comments = client.fetch_comments(ref)
    meta = client.fetch_meta(ref)
    pr_meta = {**meta, "author": (meta.get("author") or {}).get("login"), "files": files}

    thread_comments: dict[str, list[RawComment]] = {}

    def comments_of(thread: dict) -> list[RawComment]:
        if thread["id"] not in thread_comments:
            thread_comments[thread["id"]] = [RawComment.from_node(n) for n in client.fetch_thread_comments(thread)]
        return thread_comments[thread["id"]]

    report: dict = {"pr": pr_meta, "statePath": state_path}

    threads: list[dict] = []
    if options.wants("threads"):
        for t in all_threads:
            if not options.show_all and not options.with_resolved and t.get("isResolved"):
                continue
            status = state.status_of("thread", t["id"])
            if not options.include_done and status in _HANDLED:
                continue
            threads.append(
                {
                    "thread_id": t["id"],
                    "isResolved": t.get("isResolved", False),
                    "isOutdated": t.get("isOutdated", False),
                    "path": t.get("path"),
                    "line": t.get("line"),
                    "status": status,
                    "comments": [
                        {
                            "id": c.id,
                            "author": c.author,
                            "body": clean(c.body),
                            "url": c.url,
                            "createdAt": c.created_at,
                        }
                        for c in comments_of(t)
                    ],
                }
            )
        report["threads"] = threads

    bot_summaries: list[dict] = []
    if options.wants("summaries") or options.wants("nitpicks"):
        bots = set(config.get("bots") or [])
        candidates = [RawComment.from_node(c) for c in [*comments, *reviews]]
        for c in candidates:
            if c.author not in bots:
                continue
            entry: dict = {"author": c.author, "url": c.url}
            if options.wants("summaries"):
                entry["body"] = clean(c.body)
            if options.wants("nitpicks"):
                nitpicks = with_status(parse_nitpicks(c.body), state)
                if not options.include_done:
                    nitpicks = [n for n in nitpicks if n.status not in _HANDLED]
                entry["nitpicks"] = [n.to_dict() for n in nitpicks]
            if entry.get("body") or entry.get("nitpicks"):
                bot_summaries.append(entry)
        report["botSummaries"] = bot_summaries

    user_comments: list[dict] = []
    if options.wants("userComments"):
        ignored = set(config.get("ignored_authors") or [])
        for t in all_threads:
            if not options.with_resolved and t.get("isResolved"):
                continue
            for c in comments_of(t):
                if c.author in ignored:
                    continue
                user_comments.append(
                    {
                        "id": c.id,
                        "author": c.author,
                        "body": c.body,
                        "url": c.url,
                        "createdAt": c.created_at,
                        "thread_id": t["id"],
                        "file": t.get("path"),
                        "line": t.get("line"),
                        "isResolved": t.get("isResolved", False),
                        "isOutdated": t.get("isOutdated", False),
                    }
                )
        # ISO-8601 timestamps from GitHub sort chronologically as strings.
        user_comments.sort(key=lambda c: c["createdAt"] or "")
        report["userComments"] = user_comments

    report["summary"] = {
        "totalThreads": len(all_threads),
        "filteredCount": len(threads),
        "unresolvedCount": sum(1 for t in all_threads if not t.get("isResolved")),
        "resolvedThreadsCount": sum(1 for t in all_threads if t.get("isResolved")),
        "withResolved": options.with_resolved,
        "botSummariesCount": len(bot_summaries),
        "nitpicksCount": sum(len(s.get("nitpicks", [])) for s in bot_summaries),
        "userCommentsCount": len(user_comments),
        "userCommentsByAuthor": dict(Counter(c["author"] for c in user_comments)),
    }
    logger.debug("Collected report for %s: %s", ref, report["summary"])
    return report
