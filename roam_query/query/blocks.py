"""Find query blocks embedded in larger text."""

from __future__ import annotations

import re

QUERY_PREFIX = "{{[[query]]:"

_QUERY_BLOCK_RE = re.compile(r"^\s*\{\{\[\[query\]\]:", re.IGNORECASE)


def is_query_block(text: str) -> bool:
    """Return True if the text starts (after whitespace) with a query block."""
    return _QUERY_BLOCK_RE.match(text) is not None


def extract_query_blocks(text: str) -> list[str]:
    """Extract every ``{{[[query]]: ...}}`` block from a larger string.

    Braces are counted from the opening ``{{`` so nested operators like
    ``{between: ...}`` inside the query do not end the match early.
    Unterminated blocks are skipped.
    """
    matches: list[str] = []
    start = 0

    while True:
        found = text.find(QUERY_PREFIX, start)
        if found == -1:
            break

        depth = 2
        pos = found + len(QUERY_PREFIX)
        while pos < len(text) and depth > 0:
            char = text[pos]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
            pos += 1

        if depth == 0:
            matches.append(text[found:pos])
        start = pos

    return matches
