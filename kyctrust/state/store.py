"""Observable in-memory state container."""

from __future__ import annotations

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Mapping, MutableMapping, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=MutableMapping[str, Any])

StateListener = Callable[[S, S], None]


class StateStore(Generic[S]):
    """Hold one state snapshot and notify listeners after each update.

    Snapshots handed out are shallow copies, so callers cannot mutate the
    live state without going through :meth:`set_state`.  The known field set
    is fixed by the keys of the initial state.
    """

    def __init__(self, initial_state: S) -> None:
        self._initial_state: S = copy.deepcopy(initial_state)
        self._state: S = copy.deepcopy(initial_state)
        self._listeners: dict[object, StateListener] = {}
        self._lock = threading.RLock()

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(self._initial_state)

    def get_state(self) -> S:
        with self._lock:
            return copy.copy(self._state)

    def get_field(self, key: str) -> Any:
        with self._lock:
            if key not in self._state:
                raise KeyError(key)
            return copy.copy(self._state[key])

    def set_state(self, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` over the current state and notify listeners.

        Raises:
            KeyError: if ``patch`` names a field the state does not have.
        """
        self.update(lambda _state: patch)

    def update(self, compute_patch: Callable[[S], Mapping[str, Any]]) -> None:
        """Like :meth:`set_state`, with the patch computed from the current
        state while no other update can run.
        """
        with self._lock:
            previous = copy.copy(self._state)
            patch = compute_patch(copy.copy(self._state))
            unknown = set(patch) - self.field_names
            if unknown:
                raise KeyError(f"Unknown state fields: {', '.join(sorted(unknown))}")
            merged = copy.copy(self._state)
            merged.update(patch)
            self._state = merged
            new = copy.copy(merged)
            listeners = list(self._listeners.values())

        for listener in listeners:
            try:
                listener(copy.copy(new), copy.copy(previous))
            except Exception as exc:
                logger.error(
                    "Error in state change listener: %s",
                    {
                        "message": str(exc) or "Unknown error in state change listener",
                        "type": type(exc).__name__,
                        "timestamp": datetime.now(timezone.utc).isoformat(),
                    },
                )

    def set_field(self, key: str, value: Any) -> None:
        self.set_state({key: value})

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it.

        Each call adds a separate registration, and its handle only ever
        removes that one.
        """
        token = object()
        with self._lock:
            self._listeners[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def reset(self) -> None:
        self.set_state(copy.deepcopy(self._initial_state))


__all__ = ["StateListener", "StateStore"]
