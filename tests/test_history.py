"""Unit tests for the linear undo/redo history."""

from __future__ import annotations

import pytest

from markpad.editor.history import ContentHistory, HistoryPolicy


def test_undo_walks_back_through_every_commit() -> None:
    history = ContentHistory("seed")
    values = ["a", "ab", "abc", "abcd"]
    for value in values:
        history.commit(value)

    observed = [history.undo() for _ in values]

    assert observed == ["abc", "ab", "a", "seed"]
    assert history.cursor == 0
    assert history.undo() == "seed"
    assert history.cursor == 0
    assert not history.can_undo()


def test_commit_returns_cursor_and_never_deduplicates() -> None:
    history = ContentHistory("same")

    assert history.commit("same") == 1
    assert history.commit("same") == 2
    assert history.entries == ("same", "same", "same")


def test_commit_after_undo_discards_redo_entries() -> None:
    history = ContentHistory("")
    for value in ("one", "two", "three"):
        history.commit(value)
    history.undo()
    history.undo()

    history.commit("branch")

    assert history.entries == ("", "one", "branch")
    assert not history.can_redo()
    assert history.redo() == "branch"
    assert history.cursor == 2


def test_redo_replays_undone_entries() -> None:
    history = ContentHistory("x")
    history.commit("xy")
    history.undo()

    assert history.can_redo()
    assert history.redo() == "xy"
    assert history.current() == "xy"
    assert not history.can_redo()


def test_reset_reseeds_history() -> None:
    history = ContentHistory("a")
    history.commit("b")

    history.reset("restored")

    assert history.entries == ("restored",)
    assert history.cursor == 0


def test_capped_history_drops_oldest_entries() -> None:
    history = ContentHistory("0", policy=HistoryPolicy(max_entries=3))
    for value in ("1", "2", "3", "4"):
        history.commit(value)

    assert history.entries == ("2", "3", "4")
    assert history.current() == "4"
    assert history.undo() == "3"
    assert history.undo() == "2"
    assert history.undo() == "2"


def test_history_policy_rejects_non_positive_cap() -> None:
    with pytest.raises(ValueError):
        HistoryPolicy(max_entries=0)
