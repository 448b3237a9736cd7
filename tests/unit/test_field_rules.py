from __future__ import annotations

import pytest

from rowsync.services.validation import Rule, RuleSyntaxError, parse_rules


def test_parse_pipe_declaration():
    rules = parse_rules("field1", "required|string|max:255")
    assert rules.rules == (Rule("required"), Rule("string"), Rule("max", "255"))
    assert rules.required
    assert not rules.numeric_context


def test_parse_list_declaration_keeps_pipes_in_regex():
    rules = parse_rules("code", ["required", "regex:^(A|B)[0-9]+$"])
    assert rules.check("A12") == []
    assert rules.check("C12") == ["code format is invalid"]


@pytest.mark.parametrize(
    "declaration, message",
    [
        ("required|unique", "unknown rule 'unique'"),
        ("max", "needs an argument"),
        ("max:", "needs an argument"),
        ("string:5", "takes no argument"),
        ("max:ten", "numeric argument"),
        ("regex:[", "invalid regex"),
    ],
)
def test_parse_errors(declaration, message):
    with pytest.raises(RuleSyntaxError) as e:
        parse_rules("f", declaration)
    assert message in str(e.value)


def test_required_and_blank_values():
    rules = parse_rules("field1", "required|string|max:3")
    assert rules.check("") == ["field1 is required"]
    assert rules.check("   ") == ["field1 is required"]
    assert rules.check(None) == ["field1 is required"]


def test_blank_value_without_required_passes_every_rule():
    rules = parse_rules("note", "nullable|numeric|min:5")
    assert rules.check("") == []
    assert rules.check(None) == []


def test_string_length_bounds():
    rules = parse_rules("field1", "string|min:2|max:4")
    assert rules.check("abc") == []
    assert rules.check("a") == ["field1 must be at least 2 characters"]
    assert rules.check("abcde") == ["field1 may not be greater than 4 characters"]


def test_numeric_bounds_compare_values():
    rules = parse_rules("field2", "required|numeric|min:0|max:100")
    assert rules.check("42.5") == []
    assert rules.check("-1") == ["field2 must be at least 0"]
    assert rules.check("1e3") == ["field2 may not be greater than 100"]


@pytest.mark.parametrize("value", ["1", "-2", "+3.5", ".5", "1e-3", " 7 "])
def test_numeric_accepts(value):
    assert parse_rules("n", "numeric").check(value) == []


@pytest.mark.parametrize("value", ["abc", "1,5", "inf", "nan", "1e999", "0x10"])
def test_numeric_rejects(value):
    assert parse_rules("n", "numeric").check(value) == ["n must be a number"]


def test_numeric_failure_does_not_also_report_bounds():
    assert parse_rules("n", "numeric|max:5").check("abc") == ["n must be a number"]


def test_integer_rule():
    rules = parse_rules("qty", "integer")
    assert rules.check("12") == []
    assert rules.check(12) == []
    assert rules.check("1.5") == ["qty must be an integer"]


def test_in_rule():
    rules = parse_rules("status", "in:open, closed")
    assert rules.check("closed") == []
    assert rules.check("gone") == ["status must be one of: open, closed"]


def test_string_rule_rejects_non_text():
    assert parse_rules("f", "string").check(5) == ["f must be a string"]


def test_bail_stops_at_first_failure():
    rules = parse_rules("f", "bail|string|min:5|regex:^x")
    assert rules.check("ab") == ["f must be at least 5 characters"]
    assert parse_rules("f", "string|min:5|regex:^x").check("ab") == [
        "f must be at least 5 characters",
        "f format is invalid",
    ]
