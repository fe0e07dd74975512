"""Debounced persistence of the active document to a durable key-value store."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping, Protocol

from ..errors import PersistenceError
from ..utils.file_io import write_text

__all__ = [
    "CONTENT_KEY",
    "TIMESTAMP_KEY",
    "DEFAULT_DELAY_SECONDS",
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "PersistenceScheduler",
    "TimerHandle",
    "default_timer_factory",
]

LOGGER = logging.getLogger(__name__)

CONTENT_KEY = "markdown-editor-content"
TIMESTAMP_KEY = "markdown-editor-timestamp"
DEFAULT_DELAY_SECONDS = 1.0


class KeyValueStore(Protocol):
    """Minimal durable string store."""

    def get(self, key: str) -> str | None:  # pragma: no cover - protocol stub
        ...

    def set(self, key: str, value: str) -> None:  # pragma: no cover - protocol stub
        ...

    def delete(self, key: str) -> None:  # pragma: no cover - protocol stub
        ...


class InMemoryStore:
    """Dict-backed store for tests and ephemeral sessions."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: MutableMapping[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def as_dict(self) -> dict[str, str]:
        return dict(self._data)


class JsonFileStore:
    """Store persisted as a single JSON object with atomic replace writes."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read_payload().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        payload = self._read_payload()
        payload[key] = value
        self._write_payload(payload)

    def delete(self, key: str) -> None:
        payload = self._read_payload()
        if payload.pop(key, None) is not None:
            self._write_payload(payload)

    def _read_payload(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        text = self._path.read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Store file %s is not valid JSON: %s", self._path, exc)
            return {}
        if isinstance(data, Mapping):
            return dict(data)
        return {}

    def _write_payload(self, payload: Mapping[str, Any]) -> None:
        body = json.dumps(payload, indent=2, sort_keys=True)
        write_text(self._path, body)


class TimerHandle(Protocol):
    def cancel(self) -> None:  # pragma: no cover - protocol stub
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def default_timer_factory(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Arm ``callback`` on the running event loop, or on a daemon thread timer."""

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
    return loop.call_later(delay, callback)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class PersistenceScheduler:
    """Writes the latest scheduled text once a quiet period has elapsed.

    Each :meth:`schedule` call replaces the pending timer, so only the last
    value scheduled inside the window is ever written. Timers may fire on a
    worker thread, so state changes happen under ``_lock`` and store writes
    are serialized by ``_write_lock``. A pending value is only cleared once
    it has reached the store. Store failures are logged and swallowed; the
    in-memory document stays authoritative.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        delay: float = DEFAULT_DELAY_SECONDS,
        timer_factory: TimerFactory | None = None,
        clock: Callable[[], int] | None = None,
        error_reporter: Callable[[PersistenceError], None] | None = None,
    ) -> None:
        self._store = store
        self._delay = max(0.0, float(delay))
        self._timer_factory = timer_factory or default_timer_factory
        self._clock = clock or _epoch_millis
        self._error_reporter = error_reporter
        self._timer: TimerHandle | None = None
        self._pending_text: str | None = None
        self._generation = 0
        self._lock = threading.RLock()
        self._write_lock = threading.Lock()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending_text is not None

    def schedule(self, text: str) -> None:
        """Cancel any pending write and arm a new one for ``text``."""

        with self._lock:
            self._cancel_timer()
            self._pending_text = text
            self._generation += 1
            generation = self._generation
            self._timer = self._timer_factory(self._delay, lambda: self._fire(generation))
        LOGGER.debug("Persistence scheduled (len=%d, delay=%.3fs)", len(text), self._delay)

    def flush(self) -> bool:
        """Write a pending value now, waiting for a write already in progress.

        Returns True when the pending value reached the store.
        """

        with self._lock:
            had_pending = self._pending_text is not None
            self._cancel_timer()
        with self._write_lock:
            with self._lock:
                text = self._pending_text
                generation = self._generation
            if text is None:
                # an in-flight timer write got there first
                return had_pending
            return self._write(text, generation)

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._pending_text = None
            self._generation += 1

    def load_initial(self, seed: str | None = None) -> str | None:
        """Return ``seed`` when given, otherwise the persisted text.

        An empty stored value counts as no draft.
        """

        if seed:
            return seed
        try:
            stored = self._store.get(CONTENT_KEY)
        except Exception as exc:
            self._report(PersistenceError("read", CONTENT_KEY, exc))
            return None
        return stored or None

    def _fire(self, generation: int) -> None:
        with self._write_lock:
            with self._lock:
                if generation != self._generation or self._pending_text is None:
                    return
                self._timer = None
                text = self._pending_text
            self._write(text, generation)

    def _write(self, text: str, generation: int) -> bool:
        # caller holds _write_lock
        try:
            self._store.set(CONTENT_KEY, text)
        except Exception as exc:
            self._report(PersistenceError("write", CONTENT_KEY, exc))
            return False
        with self._lock:
            if generation == self._generation:
                self._pending_text = None
        try:
            self._store.set(TIMESTAMP_KEY, str(self._clock()))
        except Exception as exc:
            self._report(PersistenceError("write", TIMESTAMP_KEY, exc))
        LOGGER.debug("Persisted document text (len=%d)", len(text))
        return True

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()

    def _report(self, error: PersistenceError) -> None:
        LOGGER.warning("%s", error)
        if self._error_reporter is not None:
            try:
                self._error_reporter(error)
            except Exception:  # pragma: no cover - reporter bugs must not reach the editor
                LOGGER.debug("Persistence error reporter failed", exc_info=True)
