"""Unit tests for the query block parser."""

from __future__ import annotations

import pytest

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
    Search,
    Tag,
)
from roam_query.query.parser import extract_query_expression, parse_query, parse_query_with_name

# ---------------------------------------------------------------------------
# Wrapper handling
# ---------------------------------------------------------------------------


class TestExtractExpression:
    def test_strips_wrapper(self) -> None:
        assert extract_query_expression("{{[[query]]: [[a]]}}") == "[[a]]"

    def test_bare_expression_unchanged(self) -> None:
        assert extract_query_expression("  {and: [[a]] [[b]]}  ") == "{and: [[a]] [[b]]}"

    def test_multiline_wrapper(self) -> None:
        text = "{{[[query]]:\n  {and: [[a]]\n  [[b]]}}}"
        assert extract_query_expression(text) == "{and: [[a]]\n  [[b]]}"

    def test_wrapped_and_bare_parse_identically(self) -> None:
        assert parse_query("{{[[query]]: {and: [[a]] [[b]]}}}") == parse_query(
            "{and: [[a]] [[b]]}"
        )


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------


class TestTags:
    def test_simple_tag(self) -> None:
        assert parse_query("[[Project]]") == Tag(value="Project")

    def test_tag_value_trimmed(self) -> None:
        assert parse_query("[[  spaced out  ]]") == Tag(value="spaced out")

    def test_nested_tag(self) -> None:
        assert parse_query("[[Meeting with [[Alice]]]]") == Tag(value="Meeting with [[Alice]]")

    def test_doubly_nested_tag(self) -> None:
        node = parse_query("[[a [[b [[c]]]] d]]")
        assert node == Tag(value="a [[b [[c]]]] d")

    def test_unclosed_tag(self) -> None:
        with pytest.raises(QueryParseError, match="Unclosed tag reference"):
            parse_query("[[Project")

    def test_unclosed_nested_tag(self) -> None:
        with pytest.raises(QueryParseError, match="Unclosed tag reference"):
            parse_query("[[Meeting with [[Alice]]")

    def test_empty_tag(self) -> None:
        with pytest.raises(QueryParseError, match="Empty tag reference") as exc_info:
            parse_query("{and: [[ ]]}")
        assert exc_info.value.position == 6


class TestBlockRefs:
    def test_block_ref(self) -> None:
        assert parse_query("((abc123xyz))") == BlockRef(uid="abc123xyz")

    def test_block_ref_trimmed(self) -> None:
        assert parse_query("(( abc123xyz ))") == BlockRef(uid="abc123xyz")

    def test_unclosed_block_ref(self) -> None:
        with pytest.raises(QueryParseError, match="Unclosed block reference"):
            parse_query("((abc123xyz")

    def test_empty_block_ref(self) -> None:
        with pytest.raises(QueryParseError, match="Empty block reference"):
            parse_query("(( ))")


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class TestLogicalOperators:
    def test_and(self) -> None:
        node = parse_query("{and: [[a]] [[b]]}")
        assert node == And(children=(Tag("a"), Tag("b")))

    def test_or(self) -> None:
        node = parse_query("{or: [[a]] ((abc123xyz))}")
        assert node == Or(children=(Tag("a"), BlockRef("abc123xyz")))

    def test_not(self) -> None:
        assert parse_query("{not: [[DONE]]}") == Not(child=Tag("DONE"))

    def test_nested(self) -> None:
        node = parse_query("{and: [[Project]] {or: [[TODO]] {not: [[DONE]]}}}")
        assert node == And(
            children=(
                Tag("Project"),
                Or(children=(Tag("TODO"), Not(child=Tag("DONE")))),
            )
        )

    def test_operator_names_case_insensitive(self) -> None:
        assert parse_query("{AND: [[a]]}") == And(children=(Tag("a"),))
        assert parse_query("{Or: [[a]]}") == Or(children=(Tag("a"),))

    def test_whitespace_around_colon(self) -> None:
        assert parse_query("{ and :  [[a]]   [[b]] }") == And(children=(Tag("a"), Tag("b")))

    def test_empty_and_rejected(self) -> None:
        with pytest.raises(QueryParseError, match="and operator requires at least one child"):
            parse_query("{and: }")

    def test_empty_or_rejected(self) -> None:
        with pytest.raises(QueryParseError, match="or operator requires at least one child"):
            parse_query("{or:}")

    def test_unknown_operator(self) -> None:
        with pytest.raises(QueryParseError, match="Unknown operator: foo") as exc_info:
            parse_query("{foo: [[a]]}")
        assert exc_info.value.position == 1

    def test_missing_colon(self) -> None:
        with pytest.raises(QueryParseError, match="Expected ':'"):
            parse_query("{and [[a]]}")

    def test_unclosed_operator(self) -> None:
        with pytest.raises(QueryParseError, match="Expected '}'"):
            parse_query("{not: [[a]]")


class TestBetween:
    def test_between_dates(self) -> None:
        node = parse_query("{between: [[January 1st, 2026]] [[today]]}")
        assert node == Between(start_date="January 1st, 2026", end_date="today")

    def test_between_requires_two_tags(self) -> None:
        with pytest.raises(QueryParseError):
            parse_query("{between: [[today]]}")

    def test_between_dates_not_resolved_while_parsing(self) -> None:
        node = parse_query("{between: [[not a date]] [[also not]]}")
        assert node == Between(start_date="not a date", end_date="also not")


class TestSearch:
    def test_unquoted(self) -> None:
        assert parse_query("{search: meeting notes }") == Search(text="meeting notes")

    def test_quoted(self) -> None:
        assert parse_query('{search: "  padded  "}') == Search(text="  padded  ")

    def test_quoted_with_escaped_quote(self) -> None:
        assert parse_query(r'{search: "say \"hi\""}') == Search(text='say "hi"')

    def test_quoted_may_contain_brace(self) -> None:
        assert parse_query('{search: "a } b"}') == Search(text="a } b")

    def test_unclosed_quote(self) -> None:
        with pytest.raises(QueryParseError, match="Unclosed quoted string"):
            parse_query('{search: "oops}')


class TestUserOperators:
    def test_daily_notes(self) -> None:
        assert parse_query("{daily notes: }") == DailyNotes()

    def test_daily_notes_in_and(self) -> None:
        node = parse_query("{and: {daily notes: } [[TODO]]}")
        assert node == And(children=(DailyNotes(), Tag("TODO")))

    def test_by_plain(self) -> None:
        assert parse_query("{by: Alice Smith}") == By(user="Alice Smith")

    def test_by_tag(self) -> None:
        assert parse_query("{by: [[Alice]]}") == By(user="Alice")

    def test_created_by(self) -> None:
        assert parse_query("{created by: Alice}") == CreatedBy(user="Alice")

    def test_edited_by_case_insensitive(self) -> None:
        assert parse_query("{Edited By: [[Bob]]}") == EditedBy(user="Bob")

    def test_missing_user(self) -> None:
        with pytest.raises(QueryParseError, match="Missing user name"):
            parse_query("{created by: }")


# ---------------------------------------------------------------------------
# Names and top level errors
# ---------------------------------------------------------------------------


class TestNamedQueries:
    def test_name_in_wrapper(self) -> None:
        result = parse_query_with_name('{{[[query]]: "My Tasks" {and: [[TODO]] [[Project]]}}}')
        assert result.name == "My Tasks"
        assert result.query == And(children=(Tag("TODO"), Tag("Project")))

    def test_no_name(self) -> None:
        result = parse_query_with_name("{{[[query]]: [[TODO]]}}")
        assert result.name is None

    def test_name_with_escaped_quote(self) -> None:
        result = parse_query_with_name(r'"the \"good\" ones" [[a]]')
        assert result.name == 'the "good" ones'

    def test_parse_query_drops_name(self) -> None:
        assert parse_query('"Named" [[a]]') == Tag("a")


class TestTopLevelErrors:
    def test_empty_input(self) -> None:
        with pytest.raises(QueryParseError, match="found: \"EOF\""):
            parse_query("")

    def test_bare_word(self) -> None:
        with pytest.raises(QueryParseError, match="Expected '\\{', '\\[\\[', or '\\(\\('") as exc:
            parse_query("hello")
        assert exc.value.position == 0

    def test_trailing_content(self) -> None:
        with pytest.raises(QueryParseError, match="Unexpected content after query") as exc:
            parse_query("[[a]] [[b]]")
        assert exc.value.position == 6

    def test_error_message_attribute(self) -> None:
        with pytest.raises(QueryParseError) as exc:
            parse_query("{nope: [[a]]}")
        assert exc.value.message == "Unknown operator: nope"
        assert str(exc.value) == "Unknown operator: nope"
