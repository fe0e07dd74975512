"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Callable, Iterator

import pytest

from markpad.utils import logging as logging_utils


class ManualTimer:
    """Timer handle fired explicitly by the test instead of by the clock."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerFactory:
    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def armed(self) -> list[ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def fire_all(self) -> None:
        for timer in self.armed:
            timer.cancelled = True
            timer.callback()


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture(autouse=True)
def _isolated_home(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    monkeypatch.setenv("MARKPAD_LOG_DIR", str(tmp_path / "logs"))
    for name in (
        "MARKPAD_MEMORY_API_KEY",
        "MARKPAD_MEMORY_DOMAIN",
        "MARKPAD_MEMORY_BASE_URL",
        "MARKPAD_STORAGE_PATH",
        "MARKPAD_DEBUG_LOGGING",
        "MARKPAD_AUTOSAVE_DELAY_MS",
        "MARKPAD_DEBUG",
        "MARKPAD_HISTORY_MAX_ENTRIES",
        "MARKPAD_REQUEST_TIMEOUT",
        "MARKPAD_SETTINGS_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    logging_utils.remove_handlers()
