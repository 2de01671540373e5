"""Expand ``((uid))`` block references inside block text."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 4

BLOCK_REF_RE = re.compile(r"\(\(([A-Za-z0-9_-]{9})\)\)")

_REFS_QUERY = (
    "[:find ?uid ?string :in $ [?uid ...] "
    ":where [?b :block/uid ?uid] [?b :block/string ?string]]"
)

Runner = Callable[[str, list[Any]], list[list[Any]]]


def resolve_refs(
    run_query: Runner,
    text: str,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Replace block references with the referenced block's text.

    Substituted text is expanded recursively until ``max_depth``, which
    also stops reference cycles. Unknown uids are left as written.

    Args:
        run_query: Executes Datalog with positional arguments.
        text: Block text that may contain ``((uid))`` references.
        depth: Current nesting level.
        max_depth: Maximum nesting level to expand.
    """
    if depth >= max_depth or not text:
        return text

    uids = list(dict.fromkeys(BLOCK_REF_RE.findall(text)))
    if not uids:
        return text

    rows = run_query(_REFS_QUERY, [uids])
    strings: dict[str, str] = {row[0]: row[1] for row in rows}
    missing = [uid for uid in uids if uid not in strings]
    if missing:
        logger.debug("Unresolved block references: %s", ", ".join(missing))

    resolved: dict[str, str] = {
        uid: resolve_refs(run_query, content, depth + 1, max_depth)
        for uid, content in strings.items()
    }

    def _substitute(match: re.Match[str]) -> str:
        return resolved.get(match.group(1), match.group(0))

    return BLOCK_REF_RE.sub(_substitute, text)


def make_ref_resolver(run_query: Runner, max_depth: int = DEFAULT_MAX_DEPTH) -> Callable[[str], str]:
    """Bind a query runner into a single-argument reference resolver."""

    def _resolve(text: str) -> str:
        return resolve_refs(run_query, text, max_depth=max_depth)

    return _resolve
