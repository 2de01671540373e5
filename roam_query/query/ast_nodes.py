"""AST data classes for parsed query blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(frozen=True)
class Tag:
    """A page reference like ``[[Project]]``.

    The value may itself contain balanced ``[[ ]]`` pairs,
    e.g. ``[[Meeting with [[Alice]]]]``.
    """

    kind: ClassVar[str] = "tag"

    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "value": self.value}


@dataclass(frozen=True)
class BlockRef:
    """A block reference like ``((abc123xyz))``."""

    kind: ClassVar[str] = "block-ref"

    uid: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "uid": self.uid}


@dataclass(frozen=True)
class And:
    """All children must match."""

    kind: ClassVar[str] = "and"

    children: tuple[QueryNode, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "children": [c.to_dict() for c in self.children]}


@dataclass(frozen=True)
class Or:
    """At least one child must match."""

    kind: ClassVar[str] = "or"

    children: tuple[QueryNode, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "children": [c.to_dict() for c in self.children]}


@dataclass(frozen=True)
class Not:
    """The child must not match."""

    kind: ClassVar[str] = "not"

    child: QueryNode

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "child": self.child.to_dict()}


@dataclass(frozen=True)
class Between:
    """Blocks created between two dates (inclusive).

    Both dates are kept as written (``January 1st, 2026``, ``last week``)
    and only resolved to timestamps during generation.
    """

    kind: ClassVar[str] = "between"

    start_date: str
    end_date: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "startDate": self.start_date, "endDate": self.end_date}


@dataclass(frozen=True)
class Search:
    """Substring search on the block text."""

    kind: ClassVar[str] = "search"

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "text": self.text}


@dataclass(frozen=True)
class DailyNotes:
    """Blocks that live on a daily notes page."""

    kind: ClassVar[str] = "daily-notes"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind}


@dataclass(frozen=True)
class By:
    """Blocks created or last edited by a user."""

    kind: ClassVar[str] = "by"

    user: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "user": self.user}


@dataclass(frozen=True)
class CreatedBy:
    kind: ClassVar[str] = "created-by"

    user: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "user": self.user}


@dataclass(frozen=True)
class EditedBy:
    kind: ClassVar[str] = "edited-by"

    user: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "user": self.user}


QueryNode = And | Or | Not | Between | Tag | BlockRef | Search | DailyNotes | By | CreatedBy | EditedBy


@dataclass(frozen=True)
class ParseResult:
    """Parser output: the query AST plus the optional block name."""

    query: QueryNode
    name: str | None = None
