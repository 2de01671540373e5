"""Assemble complete Datalog query strings from generated clauses."""

from __future__ import annotations

from dataclasses import dataclass, field

from roam_query.query.generator import SUBJECT_VAR, DatalogClauses

DEFAULT_SELECT: tuple[str, ...] = ("?block-uid", "?block-str", "?page-title")
DEFAULT_ORDER = "?block-uid asc"

PAGE_UID_VAR = "?target-page-uid"

_BASE_CLAUSES: tuple[str, ...] = (
    f"[{SUBJECT_VAR} :block/string ?block-str]",
    f"[{SUBJECT_VAR} :block/uid ?block-uid]",
    f"[{SUBJECT_VAR} :block/page ?p]",
)
_PAGE_TITLE_CLAUSE = "[?p :node/title ?page-title]"
_PAGE_SCOPE_CLAUSE = f"[?p :block/uid {PAGE_UID_VAR}]"

_INDENT = "\n  "


@dataclass
class QueryOptions:
    """Pagination, ordering and scoping for a query.

    Attributes:
        limit: Maximum rows to return. None or -1 means unbounded.
        offset: Rows to skip.
        order_by: Datalog ``:order`` value, e.g. ``?block-uid asc``.
        page_uid: Restrict matches to blocks on this page.
    """

    limit: int | None = None
    offset: int = 0
    order_by: str | None = None
    page_uid: str | None = None

    @property
    def is_bounded(self) -> bool:
        return self.limit is not None and self.limit != -1


@dataclass
class BuiltQuery:
    """Final query text and its positional arguments."""

    query: str
    args: list[str | int] = field(default_factory=list)


def _in_clause(clauses: DatalogClauses, page_uid: str | None) -> str:
    variables = ["$", *clauses.inputs]
    if page_uid:
        variables.append(PAGE_UID_VAR)
    return ":in " + " ".join(variables)


def _args(clauses: DatalogClauses, page_uid: str | None) -> list[str | int]:
    args: list[str | int] = list(clauses.input_values)
    if page_uid:
        args.append(page_uid)
    return args


def build_datalog_query(
    clauses: DatalogClauses,
    options: QueryOptions | None = None,
    select: tuple[str, ...] = DEFAULT_SELECT,
) -> BuiltQuery:
    """Build a paginated find query returning uid, text and page title.

    Args:
        clauses: Generated where fragments and inputs.
        options: Pagination, ordering and page scope.
        select: Variables to project.

    Returns:
        BuiltQuery with the query text and argument list.
    """
    options = options or QueryOptions()

    header = [f":find {' '.join(select)}", _in_clause(clauses, options.page_uid)]
    if options.is_bounded:
        header.append(f":limit {options.limit}")
    if options.offset > 0:
        header.append(f":offset {options.offset}")
    if options.order_by:
        header.append(f":order {options.order_by}")

    where = [*_BASE_CLAUSES, _PAGE_TITLE_CLAUSE]
    if options.page_uid:
        where.append(_PAGE_SCOPE_CLAUSE)
    where.extend(clauses.where)

    query = f"[{' '.join(header)}{_INDENT}:where{_INDENT}{_INDENT.join(where)}]"
    return BuiltQuery(query=query, args=_args(clauses, options.page_uid))


def build_count_query(clauses: DatalogClauses, page_uid: str | None = None) -> BuiltQuery:
    """Build the count-only variant of a query (no pagination, no page title)."""
    where = list(_BASE_CLAUSES)
    if page_uid:
        where.append(_PAGE_SCOPE_CLAUSE)
    where.extend(clauses.where)

    header = f":find (count {SUBJECT_VAR}) {_in_clause(clauses, page_uid)}"
    query = f"[{header}{_INDENT}:where{_INDENT}{_INDENT.join(where)}]"
    return BuiltQuery(query=query, args=_args(clauses, page_uid))
