"""Convert a query AST into Datalog where-clause fragments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import assert_never

from roam_query.query.ast_nodes import (
    And,
    Between,
    BlockRef,
    By,
    CreatedBy,
    DailyNotes,
    EditedBy,
    Not,
    Or,
    QueryNode,
    Search,
    Tag,
)
from roam_query.query.dates import Clock, DateResolver, end_of_day

logger = logging.getLogger(__name__)

# Variable bound to the block being matched; every top-level clause constrains it.
SUBJECT_VAR = "?b"

_MONTHS = "January|February|March|April|May|June|July|August|September|October|November|December"
DAILY_TITLE_PATTERN = rf'#"^({_MONTHS}) \d{{1,2}}(st|nd|rd|th), \d{{4}}$"'


def escape_string(value: str) -> str:
    """Escape a literal for embedding inside a Datalog string.

    Backslashes are escaped first so the quote escapes are not doubled.
    """
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _quote(value: str) -> str:
    return f'"{escape_string(value)}"'


@dataclass
class DatalogClauses:
    """Generated where fragments plus the ``:in`` variables they need.

    ``inputs`` and ``input_values`` correspond positionally.
    """

    where: list[str] = field(default_factory=list)
    inputs: list[str] = field(default_factory=list)
    input_values: list[str | int] = field(default_factory=list)

    def extend(self, other: DatalogClauses) -> None:
        self.where.extend(other.where)
        self.inputs.extend(other.inputs)
        self.input_values.extend(other.input_values)


@dataclass
class GenerationContext:
    """Per-call variable counters."""

    ref_counter: int = 0
    input_counter: int = 0

    def next_ref(self, prefix: str) -> str:
        name = f"?{prefix}-{self.ref_counter}"
        self.ref_counter += 1
        return name

    def next_input(self, prefix: str) -> str:
        name = f"?{prefix}-{self.input_counter}"
        self.input_counter += 1
        return name


def _group(fragments: list[str]) -> str:
    """Collapse fragments into one: single fragments pass through, others get ``(and ...)``."""
    if len(fragments) == 1:
        return fragments[0]
    return f"(and {' '.join(fragments)})"


class DatalogGenerator:
    """Walks a query AST and emits Datalog clauses.

    The generator itself holds no per-query state; counters live on a
    GenerationContext created for each ``generate`` call, so one
    instance can be shared freely.

    Args:
        clock: Current-time source for relative dates in ``between``.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self.dates = DateResolver(clock)

    def generate(self, node: QueryNode) -> DatalogClauses:
        """Generate clauses for a full query.

        Raises:
            DateParseError: If a ``between`` date cannot be resolved.
        """
        clauses = self._generate(node, SUBJECT_VAR, GenerationContext())
        logger.debug("Generated %d clause(s) for %s", len(clauses.where), node.kind)
        return clauses

    def _generate(self, node: QueryNode, var: str, ctx: GenerationContext) -> DatalogClauses:
        match node:
            case And(children=children):
                return self._generate_and(children, var, ctx)
            case Or(children=children):
                return self._generate_or(children, var, ctx)
            case Not(child=child):
                return self._generate_not(child, var, ctx)
            case Between(start_date=start, end_date=end):
                return self._generate_between(start, end, var, ctx)
            case Tag(value=value):
                return self._generate_tag(value, var, ctx)
            case BlockRef(uid=uid):
                return self._generate_block_ref(uid, var, ctx)
            case Search(text=text):
                return self._generate_search(text)
            case DailyNotes():
                return self._generate_daily_notes(var)
            case By(user=user):
                return self._generate_by(user, var)
            case CreatedBy(user=user):
                return self._generate_user(user, var, ":create/user", "?creator")
            case EditedBy(user=user):
                return self._generate_user(user, var, ":edit/user", "?editor")
            case _:
                assert_never(node)

    def _generate_and(
        self, children: tuple[QueryNode, ...], var: str, ctx: GenerationContext
    ) -> DatalogClauses:
        result = DatalogClauses()
        for child in children:
            result.extend(self._generate(child, var, ctx))
        return result

    def _generate_or(
        self, children: tuple[QueryNode, ...], var: str, ctx: GenerationContext
    ) -> DatalogClauses:
        result = DatalogClauses()
        branches: list[str] = []
        for child in children:
            child_clauses = self._generate(child, var, ctx)
            result.inputs.extend(child_clauses.inputs)
            result.input_values.extend(child_clauses.input_values)
            branches.append(_group(child_clauses.where))

        # or-join re-binds the subject so branches with disjoint variables stay connected
        result.where.append(f"(or-join [{var}] {' '.join(branches)})")
        return result

    def _generate_not(self, child: QueryNode, var: str, ctx: GenerationContext) -> DatalogClauses:
        child_clauses = self._generate(child, var, ctx)
        return DatalogClauses(
            where=[f"(not {_group(child_clauses.where)})"],
            inputs=child_clauses.inputs,
            input_values=child_clauses.input_values,
        )

    def _generate_between(
        self, start_date: str, end_date: str, var: str, ctx: GenerationContext
    ) -> DatalogClauses:
        start_var = ctx.next_input("start-date")
        end_var = ctx.next_input("end-date")

        start_ts = self.dates.resolve(start_date)
        end_ts = end_of_day(self.dates.resolve(end_date))

        return DatalogClauses(
            where=[
                f"[{var} :create/time ?create-time]",
                f"[(>= ?create-time {start_var})]",
                f"[(<= ?create-time {end_var})]",
            ],
            inputs=[start_var, end_var],
            input_values=[start_ts, end_ts],
        )

    def _generate_tag(self, title: str, var: str, ctx: GenerationContext) -> DatalogClauses:
        ref_var = ctx.next_ref("ref")
        return DatalogClauses(
            where=[
                f"[{ref_var} :node/title {_quote(title)}]",
                f"[{var} :block/refs {ref_var}]",
            ]
        )

    def _generate_block_ref(self, uid: str, var: str, ctx: GenerationContext) -> DatalogClauses:
        ref_var = ctx.next_ref("block-ref")
        return DatalogClauses(
            where=[
                f"[{ref_var} :block/uid {_quote(uid)}]",
                f"[{var} :block/refs {ref_var}]",
            ]
        )

    def _generate_search(self, text: str) -> DatalogClauses:
        return DatalogClauses(where=[f"[(clojure.string/includes? ?block-str {_quote(text)})]"])

    def _generate_daily_notes(self, var: str) -> DatalogClauses:
        return DatalogClauses(
            where=[
                f"[{var} :block/page ?daily-page]",
                "[?daily-page :node/title ?daily-title]",
                f"[(re-find {DAILY_TITLE_PATTERN} ?daily-title)]",
            ]
        )

    def _generate_by(self, user: str, var: str) -> DatalogClauses:
        name = _quote(user)
        created = f"(and [{var} :create/user ?by-creator] [?by-creator :user/display-name {name}])"
        edited = f"(and [{var} :edit/user ?by-editor] [?by-editor :user/display-name {name}])"
        return DatalogClauses(where=[f"(or-join [{var}] {created} {edited})"])

    def _generate_user(self, user: str, var: str, attribute: str, user_var: str) -> DatalogClauses:
        return DatalogClauses(
            where=[
                f"[{var} {attribute} {user_var}]",
                f"[{user_var} :user/display-name {_quote(user)}]",
            ]
        )


def generate_clauses(node: QueryNode, clock: Clock | None = None) -> DatalogClauses:
    """Generate Datalog clauses for a query AST.

    Raises:
        DateParseError: If a ``between`` date cannot be resolved.
    """
    return DatalogGenerator(clock).generate(node)
