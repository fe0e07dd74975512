"""Tests for debounced draft persistence."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from pathlib import Path

import pytest

from markpad.errors import PersistenceError
from markpad.services.persistence import (
    CONTENT_KEY,
    TIMESTAMP_KEY,
    InMemoryStore,
    JsonFileStore,
    PersistenceScheduler,
    default_timer_factory,
)


class _FailingStore(InMemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = True

    def get(self, key: str) -> str | None:
        raise OSError("storage unavailable")

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("quota exceeded")
        super().set(key, value)


def _scheduler(store, timers, **kwargs) -> PersistenceScheduler:
    return PersistenceScheduler(store, delay=1.0, timer_factory=timers, clock=lambda: 1700000000000, **kwargs)


def test_only_last_scheduled_value_is_written(timers) -> None:
    store = InMemoryStore()
    scheduler = _scheduler(store, timers)

    for value in ("a", "ab", "abc"):
        scheduler.schedule(value)

    assert len(timers.timers) == 3
    assert len(timers.armed) == 1
    assert timers.armed[0].delay == 1.0
    assert store.as_dict() == {}

    timers.fire_all()

    assert store.as_dict() == {CONTENT_KEY: "abc", TIMESTAMP_KEY: "1700000000000"}
    assert not scheduler.pending


def test_stale_timer_callback_is_ignored(timers) -> None:
    store = InMemoryStore()
    scheduler = _scheduler(store, timers)
    scheduler.schedule("first")
    stale = timers.timers[0]
    scheduler.schedule("second")

    stale.callback()

    assert store.get(CONTENT_KEY) is None
    timers.fire_all()
    assert store.get(CONTENT_KEY) == "second"


def test_flush_writes_pending_value_and_cancels_timer(timers) -> None:
    store = InMemoryStore()
    scheduler = _scheduler(store, timers)
    scheduler.schedule("draft")

    assert scheduler.flush() is True
    assert store.get(CONTENT_KEY) == "draft"
    assert timers.armed == []
    assert scheduler.flush() is False


def test_cancel_discards_pending_value(timers) -> None:
    store = InMemoryStore()
    scheduler = _scheduler(store, timers)
    scheduler.schedule("draft")

    scheduler.cancel()
    timers.fire_all()

    assert store.as_dict() == {}
    assert not scheduler.pending


def test_write_failure_is_logged_and_swallowed(timers, caplog: pytest.LogCaptureFixture) -> None:
    reported: list[PersistenceError] = []
    scheduler = _scheduler(_FailingStore(), timers, error_reporter=reported.append)
    scheduler.schedule("draft")

    with caplog.at_level(logging.WARNING, logger="markpad.services.persistence"):
        timers.fire_all()

    assert len(reported) == 1
    assert reported[0].operation == "write"
    assert reported[0].key == CONTENT_KEY
    assert "quota exceeded" in caplog.text


def test_load_initial_prefers_seed() -> None:
    scheduler = PersistenceScheduler(InMemoryStore({CONTENT_KEY: "stored"}))

    assert scheduler.load_initial("seeded") == "seeded"
    assert scheduler.load_initial() == "stored"
    assert scheduler.load_initial("") == "stored"


def test_load_initial_returns_none_when_store_is_empty_or_broken() -> None:
    assert PersistenceScheduler(InMemoryStore()).load_initial() is None
    assert PersistenceScheduler(_FailingStore()).load_initial() is None


def test_json_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "storage.json"
    store = JsonFileStore(path)

    store.set(CONTENT_KEY, "# Title")
    store.set(TIMESTAMP_KEY, "42")
    store.delete(TIMESTAMP_KEY)

    assert JsonFileStore(path).get(CONTENT_KEY) == "# Title"
    assert json.loads(path.read_text(encoding="utf-8")) == {CONTENT_KEY: "# Title"}


def test_json_file_store_ignores_invalid_json(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "storage.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        assert JsonFileStore(path).get(CONTENT_KEY) is None

    assert "not valid JSON" in caplog.text


def test_load_initial_treats_empty_draft_as_missing() -> None:
    scheduler = PersistenceScheduler(InMemoryStore({CONTENT_KEY: ""}))

    assert scheduler.load_initial() is None


def test_failed_write_stays_pending_for_flush(timers) -> None:
    store = _FailingStore()
    scheduler = _scheduler(store, timers)
    scheduler.schedule("draft")

    timers.fire_all()
    assert scheduler.pending

    store.fail_writes = False
    assert scheduler.flush() is True
    assert store.as_dict()[CONTENT_KEY] == "draft"


class _SlowStore(InMemoryStore):
    """Blocks inside ``set`` until the test releases it."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def set(self, key: str, value: str) -> None:
        if key == CONTENT_KEY:
            self.entered.set()
            assert self.release.wait(timeout=5)
        super().set(key, value)


def test_thread_timer_writes_when_no_loop_is_running() -> None:
    store = _SlowStore()
    store.release.set()
    scheduler = PersistenceScheduler(store, delay=0.01)

    scheduler.schedule("threaded")

    assert store.entered.wait(timeout=5)
    for _ in range(500):
        if not scheduler.pending:
            break
        time.sleep(0.01)
    assert store.get(CONTENT_KEY) == "threaded"
    assert not scheduler.pending


def test_flush_waits_for_write_in_progress_on_timer_thread() -> None:
    store = _SlowStore()
    scheduler = PersistenceScheduler(store, delay=0)
    scheduler.schedule("final draft")
    assert store.entered.wait(timeout=5)

    threading.Timer(0.05, store.release.set).start()
    written = scheduler.flush()

    assert written is True
    assert store.get(CONTENT_KEY) == "final draft"
    assert not scheduler.pending


def test_default_timer_factory_returns_thread_timer_outside_loop() -> None:
    fired = threading.Event()

    handle = default_timer_factory(0.01, fired.set)

    assert isinstance(handle, threading.Timer)
    assert handle.daemon
    assert fired.wait(timeout=5)


@pytest.mark.asyncio
async def test_event_loop_timer_writes_after_delay() -> None:
    store = InMemoryStore()
    scheduler = PersistenceScheduler(store, delay=0.01)

    scheduler.schedule("first")
    scheduler.schedule("second")
    assert isinstance(scheduler._timer, asyncio.TimerHandle)

    await asyncio.sleep(0.1)

    assert store.get(CONTENT_KEY) == "second"
    assert not scheduler.pending
