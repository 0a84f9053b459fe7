"""GitHub GraphQL access for pull request review data.

Review threads, their resolution state and the thread reply / resolve
mutations only exist in GitHub's GraphQL API, so everything here goes
through PyGithub's requester rather than the REST wrappers.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from github import Auth, Github

from prtriage_core.mutations import MutationAPI

logger = logging.getLogger(__name__)

_PR_URL_RE = re.compile(r"^https://github\.com/([^/\s]+)/([^/\s]+)/pull/(\d+)")

_PAGE_FIELDS = "pageInfo { hasNextPage endCursor }"
_COMMENT_FIELDS = "id body author { login } url createdAt path line"

_THREADS_QUERY = f"""
query($owner: String!, $repo: String!, $number: Int!, $after: String) {{
  repository(owner: $owner, name: $repo) {{
    pullRequest(number: $number) {{
      reviewThreads(first: 50, after: $after) {{
        {_PAGE_FIELDS}
        nodes {{
          id isResolved isOutdated path line
          comments(first: 50) {{
            {_PAGE_FIELDS}
            nodes {{ {_COMMENT_FIELDS} }}
          }}
        }}
      }}
    }}
  }}
}}
"""

_THREAD_COMMENTS_QUERY = f"""
query($threadId: ID!, $after: String) {{
  node(id: $threadId) {{
    ... on PullRequestReviewThread {{
      comments(first: 50, after: $after) {{
        {_PAGE_FIELDS}
        nodes {{ {_COMMENT_FIELDS} }}
      }}
    }}
  }}
}}
"""

_FILES_QUERY = f"""
query($owner: String!, $repo: String!, $number: Int!, $after: String) {{
  repository(owner: $owner, name: $repo) {{
    pullRequest(number: $number) {{
      files(first: 100, after: $after) {{
        {_PAGE_FIELDS}
        nodes {{ path additions deletions changeType }}
      }}
    }}
  }}
}}
"""

_REVIEWS_QUERY = f"""
query($owner: String!, $repo: String!, $number: Int!, $after: String) {{
  repository(owner: $owner, name: $repo) {{
    pullRequest(number: $number) {{
      reviews(first: 50, after: $after) {{
        {_PAGE_FIELDS}
        nodes {{ author {{ login }} body url state }}
      }}
    }}
  }}
}}
"""

_COMMENTS_QUERY = f"""
query($owner: String!, $repo: String!, $number: Int!, $after: String) {{
  repository(owner: $owner, name: $repo) {{
    pullRequest(number: $number) {{
      comments(first: 50, after: $after) {{
        {_PAGE_FIELDS}
        nodes {{ id body author {{ login }} url createdAt }}
      }}
    }}
  }}
}}
"""

_META_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      number title state author { login } isDraft mergeable
    }
  }
}
"""

_REPLY_MUTATION = """
mutation($threadId: ID!, $body: String!) {
  addPullRequestReviewThreadReply(input: {pullRequestReviewThreadId: $threadId, body: $body}) {
    comment { id url }
  }
}
"""

_RESOLVE_MUTATION = """
mutation($threadId: ID!) {
  resolveReviewThread(input: {threadId: $threadId}) {
    thread { isResolved }
  }
}
"""


class GraphQLError(RuntimeError):
    """A GraphQL response carried an ``errors`` payload."""


@dataclass(frozen=True)
class PullRequestRef:
    owner: str
    repo: str
    number: int

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"

    def variables(self) -> dict:
        return {"owner": self.owner, "repo": self.repo, "number": self.number}


def parse_pr_url(url: str) -> PullRequestRef:
    """Parse ``https://github.com/<owner>/<repo>/pull/<n>`` into a PullRequestRef."""
    match = _PR_URL_RE.match(url.strip())
    if not match:
        raise ValueError(f"Not a GitHub pull request URL: {url!r}")
    return PullRequestRef(owner=match.group(1), repo=match.group(2), number=int(match.group(3)))


def check_graphql_errors(result: dict, context: str) -> None:
    errors = result.get("errors")
    if errors:
        first = errors[0]
        message = first.get("message", first) if isinstance(first, dict) else first
        raise GraphQLError(f"GraphQL error in {context}: {message}")


def _dig(data: dict, *keys: str) -> Any:
    for key in keys:
        if data is None:
            return None
        data = data.get(key)
    return data


class GithubGraphQL:
    """Thin wrapper over PyGithub's requester that returns the ``data`` payload."""

    def __init__(self, token: str, requester=None):
        self._requester = requester if requester is not None else Github(auth=Auth.Token(token)).requester

    def query(self, query: str, variables: dict, context: str) -> dict:
        _, result = self._requester.graphql_query(query, variables)
        check_graphql_errors(result, context)
        return result.get("data") or {}


class GithubReviewClient:
    """Read side: pages through every review connection of one pull request."""

    def __init__(self, graphql: GithubGraphQL):
        self._gql = graphql

    def _paginate(self, query: str, ref: PullRequestRef, connection: str) -> list[dict]:
        nodes: list[dict] = []
        cursor: str | None = None
        while True:
            variables = {**ref.variables(), "after": cursor}
            data = self._gql.query(query, variables, f"{connection} of {ref}")
            page = _dig(data, "repository", "pullRequest", connection) or {}
            nodes.extend(page.get("nodes") or [])
            page_info = page.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not cursor:
                return nodes

    def fetch_threads(self, ref: PullRequestRef) -> list[dict]:
        return self._paginate(_THREADS_QUERY, ref, "reviewThreads")

    def fetch_thread_comments(self, thread: dict) -> list[dict]:
        """Return all comments of a thread, following its own comment pagination."""
        first_page = thread.get("comments") or {}
        comments = list(first_page.get("nodes") or [])
        page_info = first_page.get("pageInfo") or {}
        cursor = page_info.get("endCursor")
        has_next = page_info.get("hasNextPage", False)

        while has_next and cursor:
            data = self._gql.query(
                _THREAD_COMMENTS_QUERY,
                {"threadId": thread["id"], "after": cursor},
                f"comments of thread {thread['id']}",
            )
            page = _dig(data, "node", "comments")
            if not page:
                logger.debug("Thread %s returned no comment page; stopping pagination", thread["id"])
                break
            comments.extend(page.get("nodes") or [])
            has_next = (page.get("pageInfo") or {}).get("hasNextPage", False)
            cursor = (page.get("pageInfo") or {}).get("endCursor")
        return comments

    def fetch_files(self, ref: PullRequestRef) -> list[dict]:
        return self._paginate(_FILES_QUERY, ref, "files")

    def fetch_reviews(self, ref: PullRequestRef) -> list[dict]:
        return self._paginate(_REVIEWS_QUERY, ref, "reviews")

    def fetch_comments(self, ref: PullRequestRef) -> list[dict]:
        return self._paginate(_COMMENTS_QUERY, ref, "comments")

    def fetch_meta(self, ref: PullRequestRef) -> dict:
        data = self._gql.query(_META_QUERY, ref.variables(), f"metadata of {ref}")
        pr = _dig(data, "repository", "pullRequest")
        if pr is None:
            raise ValueError(f"PR {ref} not found.")
        return pr


class GithubMutationAPI(MutationAPI):
    """Write side: the two thread mutations the executor needs."""

    def __init__(self, graphql: GithubGraphQL):
        self._gql = graphql

    def add_reply(self, thread_id: str, body: str) -> None:
        self._gql.query(_REPLY_MUTATION, {"threadId": thread_id, "body": body}, f"reply to thread {thread_id}")

    def resolve_thread(self, thread_id: str) -> None:
        self._gql.query(_RESOLVE_MUTATION, {"threadId": thread_id}, f"resolve thread {thread_id}")
