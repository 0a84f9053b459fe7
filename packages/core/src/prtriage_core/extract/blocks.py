"""Balanced ``<details>`` block extraction.

Bot summaries nest collapsible sections several levels deep (a "Nitpick
comments" section holding one section per file), which a single regex
cannot match reliably. find_balanced_blocks() walks the text with a depth
counter over two cursors (next opening tag and next closing tag) and returns
only the top-level blocks. Callers that need the next level re-run it on a
block's content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Pattern, Union

LabelFilter = Union[str, Pattern[str], Callable[[str], bool], None]


@dataclass(frozen=True)
class Block:
    """One balanced region: the whole wrapper, its heading and its body."""

    full: str
    label: str
    content: str


def _matcher(label_filter: LabelFilter) -> Callable[[str], bool]:
    if label_filter is None:
        return lambda _label: True
    if callable(label_filter):
        return label_filter
    pattern = re.compile(label_filter) if isinstance(label_filter, str) else label_filter
    return lambda label: pattern.search(label) is not None


def find_balanced_blocks(
    text: str,
    label_filter: LabelFilter = None,
    tag: str = "details",
    label_tag: str = "summary",
) -> list[Block]:
    """Return the top-level balanced ``<tag>`` blocks of ``text`` in document order.

    ``label_filter`` is matched against each block's ``<label_tag>`` text: a
    regex (string or compiled, matched with search) or a predicate. A block
    that fails the filter is still consumed as a unit, so blocks nested in it
    are never returned.

    Unterminated blocks are dropped; scanning resumes right after their
    opening tag. Never raises for malformed markup.
    """
    accept = _matcher(label_filter)
    open_re = re.compile(rf"<{re.escape(tag)}[\s>]")
    close_tag = f"</{tag}>"
    label_re = re.compile(rf"<{re.escape(label_tag)}>(.*?)</{re.escape(label_tag)}>", re.DOTALL)
    label_close = f"</{label_tag}>"

    blocks: list[Block] = []
    pos = 0
    while True:
        start_match = open_re.search(text, pos)
        if start_match is None:
            break
        start = start_match.start()
        end = _find_block_end(text, start_match.end(), open_re, close_tag)
        if end is None:
            pos = start_match.end()
            continue

        full = text[start:end]
        label_match = label_re.search(full)
        label = label_match.group(1) if label_match else ""
        if accept(label):
            label_end = full.find(label_close)
            if label_end != -1:
                content = full[label_end + len(label_close) : len(full) - len(close_tag)].strip()
            else:
                content = ""
            blocks.append(Block(full=full, label=label, content=content))
        pos = end
    return blocks


def _find_block_end(text: str, cursor: int, open_re: Pattern[str], close_tag: str) -> int | None:
    """Return the index just past the closing tag that balances an already-open block."""
    depth = 1
    while depth > 0 and cursor < len(text):
        next_close = text.find(close_tag, cursor)
        if next_close == -1:
            return None
        next_open = open_re.search(text, cursor)
        if next_open is not None and next_open.start() < next_close:
            depth += 1
            cursor = next_open.end()
        else:
            depth -= 1
            cursor = next_close + len(close_tag)
    return cursor if depth == 0 else None
