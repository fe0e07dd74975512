"""Cursor-aware Markdown markup insertion.

The helpers here are pure: they take the current text plus an explicit
selection span and return the new text together with the caret offset the
host should apply. Committing the text and moving the caret is left to the
caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Mapping

from ..errors import ValidationError

__all__ = ["InsertionResult", "MarkupSnippet", "SNIPPETS", "insert_markup", "get_snippet"]


@dataclass(slots=True, frozen=True)
class InsertionResult:
    """New document text and the caret offset that follows the insertion."""

    text: str
    caret: int

    def __iter__(self) -> Iterator[object]:
        yield self.text
        yield self.caret


def insert_markup(
    content: str,
    selection_start: int,
    selection_end: int,
    prefix: str,
    suffix: str = "",
    placeholder: str = "",
) -> InsertionResult:
    """Wrap the selection in ``prefix``/``suffix`` or insert a placeholder.

    An empty selection inserts ``placeholder`` between the markers. A
    non-empty selection is kept verbatim. The caret lands right after the
    inserted text, before ``suffix``.
    """

    if not 0 <= selection_start <= selection_end <= len(content):
        raise ValidationError(
            f"Invalid selection [{selection_start}, {selection_end}] for text of length {len(content)}"
        )
    selected = content[selection_start:selection_end]
    inserted = selected or placeholder
    text = content[:selection_start] + prefix + inserted + suffix + content[selection_end:]
    caret = selection_start + len(prefix) + len(inserted)
    return InsertionResult(text=text, caret=caret)


@dataclass(slots=True, frozen=True)
class MarkupSnippet:
    """Toolbar action describing one kind of Markdown markup."""

    name: str
    prefix: str
    suffix: str = ""
    placeholder: str = ""

    def apply(self, content: str, selection_start: int, selection_end: int) -> InsertionResult:
        return insert_markup(
            content,
            selection_start,
            selection_end,
            self.prefix,
            self.suffix,
            self.placeholder,
        )


SNIPPETS: Mapping[str, MarkupSnippet] = {
    snippet.name: snippet
    for snippet in (
        MarkupSnippet("bold", "**", "**", "bold text"),
        MarkupSnippet("italic", "*", "*", "italic text"),
        MarkupSnippet("heading", "# ", "", "heading"),
        MarkupSnippet("list", "- ", "", "list item"),
        MarkupSnippet("ordered_list", "1. ", "", "list item"),
        MarkupSnippet("quote", "> ", "", "quote"),
        MarkupSnippet("code", "`", "`", "code"),
        MarkupSnippet("code_block", "```\n", "\n```", "code block"),
        MarkupSnippet("link", "[", "](url)", "link text"),
        MarkupSnippet("image", "![", "](image-url)", "alt text"),
    )
}


def get_snippet(name: str) -> MarkupSnippet:
    key = (name or "").strip().lower().replace("-", "_")
    try:
        return SNIPPETS[key]
    except KeyError as exc:
        raise KeyError(f"Unknown markup snippet: {name!r}") from exc
