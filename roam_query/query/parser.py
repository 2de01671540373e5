"""Parse Roam query block syntax into an AST.

Handles both the full block form and bare expressions::

    {{[[query]]: {and: [[tag1]] [[tag2]]}}}
    {{[[query]]: "Open tasks" {or: [[TODO]] {not: [[DONE]]}}}}
    {and: {between: [[January 1st, 2026]] [[today]]} [[Project]]}
"""

from __future__ import annotations

import re

from roam_query.exceptions import QueryParseError
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
    ParseResult,
    QueryNode,
    Search,
    Tag,
)

_WRAPPER_RE = re.compile(r"^\{\{\[\[query\]\]:\s*(.+)\}\}$", re.DOTALL)
_IDENTIFIER_RE = re.compile(r"[A-Za-z]+")

# Checked before single-word operator names
_MULTI_WORD_OPERATORS: tuple[str, ...] = ("created by", "edited by", "daily notes")


def extract_query_expression(text: str) -> str:
    """Strip the ``{{[[query]]: ...}}`` framing from a query block.

    Bare expressions are returned unchanged (apart from surrounding
    whitespace). A leading quoted name is left in place for the parser.
    """
    trimmed = text.strip()
    match = _WRAPPER_RE.match(trimmed)
    if match:
        return match.group(1).strip()
    return trimmed


class QueryParser:
    """Recursive-descent parser over a single query expression.

    A parser instance is single use: create one per input string.
    """

    def __init__(self, text: str) -> None:
        self.text = extract_query_expression(text)
        self.pos = 0

    def parse(self) -> ParseResult:
        """Parse the whole input, returning the query and optional name.

        Raises:
            QueryParseError: On any structural violation.
        """
        self._skip_whitespace()

        name: str | None = None
        if self._peek() == '"':
            name = self._parse_quoted_string()
            self._skip_whitespace()

        query = self._parse_expression()
        self._skip_whitespace()

        if self.pos < len(self.text):
            raise QueryParseError(
                f'Unexpected content after query: "{self.text[self.pos:]}"', self.pos
            )

        return ParseResult(query=query, name=name)

    # -- expressions -------------------------------------------------------

    def _parse_expression(self) -> QueryNode:
        self._skip_whitespace()

        if self._peek() == "{":
            return self._parse_operator()
        if self._startswith("[["):
            return self._parse_tag()
        if self._startswith("(("):
            return self._parse_block_ref()

        found = self.text[self.pos : self.pos + 10] or "EOF"
        raise QueryParseError(
            f"Expected '{{', '[[', or '((' at position {self.pos}, found: \"{found}\"",
            self.pos,
        )

    def _parse_operator(self) -> QueryNode:
        self._expect("{")
        self._skip_whitespace()

        op_start = self.pos
        operator = self._parse_operator_name()
        self._skip_whitespace()
        self._expect(":")
        self._skip_whitespace()

        node: QueryNode
        if operator == "and":
            node = And(children=self._parse_children("and"))
        elif operator == "or":
            node = Or(children=self._parse_children("or"))
        elif operator == "not":
            node = Not(child=self._parse_expression())
        elif operator == "between":
            node = self._parse_between()
        elif operator == "search":
            node = Search(text=self._parse_search_text())
        elif operator == "daily notes":
            node = DailyNotes()
        elif operator == "by":
            node = By(user=self._parse_user())
        elif operator == "created by":
            node = CreatedBy(user=self._parse_user())
        elif operator == "edited by":
            node = EditedBy(user=self._parse_user())
        else:
            raise QueryParseError(f"Unknown operator: {operator or '(empty)'}", op_start)

        self._skip_whitespace()
        self._expect("}")
        return node

    def _parse_operator_name(self) -> str:
        remaining = self.text[self.pos :].lower()
        for op in _MULTI_WORD_OPERATORS:
            if remaining.startswith(op):
                self.pos += len(op)
                return op

        match = _IDENTIFIER_RE.match(self.text, self.pos)
        if match is None:
            return ""
        self.pos = match.end()
        return match.group(0).lower()

    def _parse_children(self, operator: str) -> tuple[QueryNode, ...]:
        children: list[QueryNode] = []

        self._skip_whitespace()
        while self.pos < len(self.text) and self._peek() != "}":
            children.append(self._parse_expression())
            self._skip_whitespace()

        if not children:
            raise QueryParseError(f"{operator} operator requires at least one child", self.pos)
        return tuple(children)

    def _parse_between(self) -> Between:
        start = self._parse_tag()
        self._skip_whitespace()
        end = self._parse_tag()
        return Between(start_date=start.value, end_date=end.value)

    # -- leaves ------------------------------------------------------------

    def _parse_tag(self) -> Tag:
        start = self.pos
        self._expect("[")
        self._expect("[")

        parts: list[str] = []
        depth = 1
        while self.pos < len(self.text):
            if self._startswith("]]"):
                depth -= 1
                self.pos += 2
                if depth == 0:
                    break
                parts.append("]]")
            elif self._startswith("[["):
                depth += 1
                parts.append("[[")
                self.pos += 2
            else:
                parts.append(self.text[self.pos])
                self.pos += 1

        if depth != 0:
            raise QueryParseError("Unclosed tag reference", self.pos)

        value = "".join(parts).strip()
        if not value:
            raise QueryParseError("Empty tag reference", start)
        return Tag(value=value)

    def _parse_block_ref(self) -> BlockRef:
        start = self.pos
        self._expect("(")
        self._expect("(")

        end = self.text.find("))", self.pos)
        if end == -1:
            raise QueryParseError("Unclosed block reference", start)

        uid = self.text[self.pos : end].strip()
        self.pos = end + 2
        if not uid:
            raise QueryParseError("Empty block reference", start)
        return BlockRef(uid=uid)

    def _parse_search_text(self) -> str:
        if self._peek() == '"':
            return self._parse_quoted_string()
        return self._read_until_brace().strip()

    def _parse_user(self) -> str:
        if self._startswith("[["):
            return self._parse_tag().value

        start = self.pos
        user = self._read_until_brace().strip()
        if not user:
            raise QueryParseError("Missing user name", start)
        return user

    def _parse_quoted_string(self) -> str:
        start = self.pos
        self._expect('"')

        chars: list[str] = []
        while self.pos < len(self.text) and self._peek() != '"':
            if self._startswith('\\"'):
                chars.append('"')
                self.pos += 2
            else:
                chars.append(self.text[self.pos])
                self.pos += 1

        if self._peek() != '"':
            raise QueryParseError("Unclosed quoted string", start)
        self.pos += 1
        return "".join(chars)

    # -- scanning helpers --------------------------------------------------

    def _read_until_brace(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] != "}":
            self.pos += 1
        return self.text[start : self.pos]

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str:
        if self.pos < len(self.text):
            return self.text[self.pos]
        return ""

    def _startswith(self, token: str) -> bool:
        return self.text.startswith(token, self.pos)

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            found = self._peek() or "EOF"
            raise QueryParseError(
                f"Expected '{char}' at position {self.pos}, found '{found}'", self.pos
            )
        self.pos += 1


def parse_query_with_name(text: str) -> ParseResult:
    """Parse a query block into its AST and optional name.

    Args:
        text: Full ``{{[[query]]: ...}}`` block or a bare expression.

    Returns:
        ParseResult with the query AST and the quoted name, if any.

    Raises:
        QueryParseError: If the query cannot be parsed.
    """
    return QueryParser(text).parse()


def parse_query(text: str) -> QueryNode:
    """Parse a query block into an AST, ignoring any block name.

    Raises:
        QueryParseError: If the query cannot be parsed.
    """
    return parse_query_with_name(text).query
