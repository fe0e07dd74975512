"""Tests for cursor-aware markup insertion."""

from __future__ import annotations

import pytest

from markpad.editor.insertion import SNIPPETS, get_snippet, insert_markup
from markpad.errors import ValidationError


def test_selection_is_wrapped_verbatim() -> None:
    text, caret = insert_markup("Hello world", 6, 11, "**", "**", "bold text")

    assert text == "Hello **world**"
    assert caret == 13


def test_empty_selection_inserts_placeholder() -> None:
    result = insert_markup("Hello world", 5, 5, "**", "**", "bold text")

    assert result.text == "Hello**bold text** world"
    assert result.caret == 16


def test_insertion_at_document_edges() -> None:
    assert tuple(insert_markup("", 0, 0, "# ", "", "heading")) == ("# heading", 9)
    assert tuple(insert_markup("end", 3, 3, "`", "`", "code")) == ("end`code`", 8)


@pytest.mark.parametrize("start,end", [(-1, 2), (3, 2), (0, 99)])
def test_invalid_selection_is_rejected(start: int, end: int) -> None:
    with pytest.raises(ValidationError):
        insert_markup("short", start, end, "*", "*", "x")


def test_link_snippet_places_caret_before_url_marker() -> None:
    result = SNIPPETS["link"].apply("see docs", 4, 8)

    assert result.text == "see [docs](url)"
    assert result.caret == 9


def test_code_block_snippet_uses_fences() -> None:
    result = get_snippet("code-block").apply("", 0, 0)

    assert result.text == "```\ncode block\n```"
    assert result.caret == len("```\ncode block")


def test_unknown_snippet_raises_key_error() -> None:
    with pytest.raises(KeyError):
        get_snippet("strikethrough")
