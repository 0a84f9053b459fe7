"""Comment body sanitizer.

Review bots pad their comments with material that is useless to whoever
triages the feedback: analysis chains, agent prompts, walkthrough tables,
poems, promotional footers and hidden state markers. clean_comment_body()
strips those with an ordered table of regex rules and keeps the nitpick
sections intact, since those carry the actual suggestions.

The rule table is plain data. Configuration can append extra rules
(``noise_rules`` in .prtriage.yml) without touching this module.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from prtriage_core.extract.blocks import find_balanced_blocks
from prtriage_core.extract.nitpicks import NITPICK_SECTION_RE

MAX_BODY_LENGTH = 15000
TRUNCATION_MARKER = "\n\n... [TRUNCATED] ..."
PRESERVED_HEADING = "\n\n### Preserved Comments\n"

_SUMMARY_TAG_RE = re.compile(r"<summary>.*?</summary>", re.DOTALL)


@dataclass(frozen=True)
class NoiseRule:
    """One substitution applied to every comment body."""

    name: str
    pattern: re.Pattern
    replacement: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> NoiseRule:
        if not d.get("pattern"):
            raise ValueError(f"noise rule {d.get('name', '?')!r} has no pattern")
        return cls(
            name=d.get("name") or d["pattern"],
            pattern=re.compile(d["pattern"], re.DOTALL),
            replacement=d.get("replacement", ""),
        )


def _aside(summary: str) -> str:
    """Pattern for a flat collapsible aside whose summary ends with ``summary``."""
    return rf"<details>\s*<summary>[^<]*?{summary}</summary>.*?</details>"


def _section(heading: str) -> str:
    """Pattern for a ``## heading`` section running up to the next heading or the end."""
    return rf"## {heading}.*?(?=##|\Z)"


def _rule(name: str, pattern: str, replacement: str = "") -> NoiseRule:
    return NoiseRule(name=name, pattern=re.compile(pattern, re.DOTALL), replacement=replacement)


# Order matters: the generic HTML comment rule must run after the rules that
# anchor on specific comment markers.
DEFAULT_NOISE_RULES: tuple[NoiseRule, ...] = (
    _rule("analysis-chain", _aside("Analysis chain")),
    _rule("agent-prompt", _aside("Prompt for AI Agents")),
    _rule("internal-state", r"<!-- internal state start -->.*?<!-- internal state end -->"),
    _rule("share", _aside("Share")),
    _rule("sequence-diagram", _section(r"Sequence Diagram\(s\)")),
    _rule("changes", _section("Changes")),
    _rule("poem", _section("Poem")),
    _rule("review-effort", _section("Estimated code review effort")),
    _rule(
        "recent-review-details",
        r"<details>\s*<summary>[^<]*?Recent review details</summary>.*?"
        r"(?=<details>\s*<summary>[^\n]*?Additional comments"
        r"|<details>\s*<summary>[^\n]*?Nitpick comments|<!--|\Z)",
    ),
    _rule("tip", r"<sub>[^<]*?Tip:.*?</sub>"),
    _rule("footer", r"Thanks for using \[CodeRabbit\].*"),
    _rule("html-comments", r"<!--.*?-->"),
)

_BLANK_LINES_RE = re.compile(r"\n{3,}")


def build_rules(extra: Iterable[dict] | None = None) -> tuple[NoiseRule, ...]:
    """Default rules followed by any configured ``{name, pattern, replacement}`` dicts."""
    if not extra:
        return DEFAULT_NOISE_RULES
    return DEFAULT_NOISE_RULES + tuple(NoiseRule.from_dict(d) for d in extra)


def truncate(text: str, max_length: int = MAX_BODY_LENGTH) -> str:
    if len(text) > max_length:
        return text[:max_length] + TRUNCATION_MARKER
    return text


def clean_comment_body(
    body: str,
    rules: Iterable[NoiseRule] = DEFAULT_NOISE_RULES,
    max_length: int = MAX_BODY_LENGTH,
) -> str:
    """Return ``body`` without bot noise, with nitpick sections kept, capped at ``max_length``.

    Nitpick sections that a rule removed are re-appended verbatim under a
    "Preserved Comments" heading. Running this twice on its own output may
    append those sections again; it is meant to run once per fetched body.
    """
    body = body or ""
    preserved = [block.full for block in find_balanced_blocks(body, NITPICK_SECTION_RE)]

    cleaned = body
    for rule in rules:
        cleaned = rule.pattern.sub(rule.replacement, cleaned)
    cleaned = _BLANK_LINES_RE.sub("\n\n", cleaned).strip()

    for full in preserved:
        summary = _SUMMARY_TAG_RE.search(full)
        if summary and summary.group(0) not in cleaned:
            cleaned += PRESERVED_HEADING + full

    return truncate(cleaned, max_length)
