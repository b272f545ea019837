"""Composable background behaviour attached to an application state store.

``build_app_state`` is the single place where a store is created, seeded from
local storage and wired to auto-persistence, cache sweeping and session
expiry.  Nothing here runs at import time.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from .app_state import (
    STALE_CACHE_THRESHOLD_MS,
    AppState,
    AppStateActions,
    Clock,
    initial_app_state,
    system_clock,
)
from .persistence import LocalStorage, StatePersistence
from .store import StateStore

logger = logging.getLogger(__name__)

CACHE_SWEEP_INTERVAL_SECONDS = 60.0
SESSION_CHECK_INTERVAL_SECONDS = 60.0


class PeriodicTask:
    """Run ``callback`` every ``interval`` seconds on a daemon thread."""

    def __init__(self, interval: float, callback: Callable[[], object], name: str) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run_once(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.exception("Periodic task %s failed", self.name)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()


def attach_persistence(
    store: StateStore[AppState], persistence: StatePersistence
) -> Callable[[], None]:
    """Save the persisted fields after every update; returns the detacher."""

    def persist(new_state, _previous_state) -> None:
        persistence.save(new_state)

    return store.subscribe(persist)


class AppStateRuntime:
    """Owner of the application state store and the policies around it."""

    def __init__(
        self,
        store: StateStore[AppState],
        actions: AppStateActions,
        persistence: StatePersistence | None = None,
        *,
        sweep_interval: float = CACHE_SWEEP_INTERVAL_SECONDS,
        sweep_threshold: int = STALE_CACHE_THRESHOLD_MS,
        session_check_interval: float = SESSION_CHECK_INTERVAL_SECONDS,
    ) -> None:
        self.store = store
        self.actions = actions
        self.persistence = persistence
        self.sweep_threshold = sweep_threshold
        self._detach_persistence: Callable[[], None] | None = None
        self.cache_sweeper = PeriodicTask(
            sweep_interval, self.sweep_cache, name="kyctrust-cache-sweep"
        )
        self.session_monitor = PeriodicTask(
            session_check_interval,
            actions.enforce_session_expiry,
            name="kyctrust-session-expiry",
        )

    def restore(self) -> bool:
        if self.persistence is None:
            return False
        return self.persistence.load(self.store)

    def enable_persistence(self) -> None:
        if self.persistence is None or self._detach_persistence is not None:
            return
        self._detach_persistence = attach_persistence(self.store, self.persistence)

    def sweep_cache(self) -> list[str]:
        removed = self.actions.sweep_stale_cache(self.sweep_threshold)
        if removed:
            logger.debug("Swept %d stale cache entries: %s", len(removed), removed)
        return removed

    def start(self) -> None:
        self.cache_sweeper.start()
        self.session_monitor.start()

    def stop(self) -> None:
        self.cache_sweeper.stop()
        self.session_monitor.stop()
        if self._detach_persistence is not None:
            self._detach_persistence()
            self._detach_persistence = None


def build_app_state(
    storage: LocalStorage | str | Path | None = None,
    clock: Clock | None = None,
    *,
    start: bool = False,
    **runtime_options,
) -> AppStateRuntime:
    """Create a store seeded from ``storage`` with auto-persistence attached.

    Args:
        storage: A :class:`LocalStorage`, a path to its database file, or
            ``None`` to keep state in memory only.
        clock: Millisecond clock; defaults to the system clock.
        start: Start the cache sweep and session expiry tasks immediately.
        **runtime_options: Interval and threshold overrides for
            :class:`AppStateRuntime`.
    """

    clock = clock or system_clock
    store: StateStore[AppState] = StateStore(initial_app_state(clock()))
    actions = AppStateActions(store, clock)

    persistence = None
    if storage is not None:
        if not isinstance(storage, LocalStorage):
            storage = LocalStorage(storage)
        persistence = StatePersistence(storage)

    runtime = AppStateRuntime(store, actions, persistence, **runtime_options)
    runtime.restore()
    runtime.enable_persistence()
    if start:
        runtime.start()
    return runtime


__all__ = [
    "AppStateRuntime",
    "PeriodicTask",
    "attach_persistence",
    "build_app_state",
]
