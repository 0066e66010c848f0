"""Tests for gotowork/verdict.py."""

import pytest

from gotowork.verdict import last_json_object, parse_verdict, strip_thinking


def test_plain_json():
    assert parse_verdict('{"should_continue": true, "reason": "cut off"}') == {
        "should_continue": True,
        "reason": "cut off",
    }


def test_thinking_block_removed():
    content = '<think>The user asked for tests {maybe}</think>\n{"should_continue": false}'
    assert parse_verdict(content) == {"should_continue": False}


def test_thinking_tags_case_insensitive():
    assert strip_thinking("<Reasoning>long\nchain</REASONING> answer") == "answer"


def test_json_embedded_in_prose():
    content = 'Here is my verdict:\n```json\n{"should_continue": true, "reason": "API error"}\n```'
    assert parse_verdict(content)["should_continue"] is True


def test_last_object_wins():
    content = '{"should_continue": false} on reflection {"should_continue": true}'
    assert parse_verdict(content) == {"should_continue": True}


def test_nested_object():
    assert last_json_object('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'


def test_no_object():
    assert last_json_object("no braces here") is None


@pytest.mark.parametrize(
    "content",
    [
        "I think you should continue.",
        '{"should_continue": "yes"}',
        '{"continue": true}',
        "[true]",
        "",
    ],
)
def test_unusable_replies(content):
    assert parse_verdict(content) is None
