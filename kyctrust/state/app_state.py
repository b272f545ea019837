"""Application-wide UI and session state with convenience actions.

Times are epoch milliseconds supplied by an injectable clock so cache and
session expiry can be exercised with simulated time.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Literal, Optional, TypedDict

from .store import StateListener, StateStore

Theme = Literal["light", "dark"]
Language = Literal["ar", "en"]

THEMES = ("light", "dark")
LANGUAGES = ("ar", "en")

SESSION_DURATION_MS = 3_600_000
DEFAULT_CACHE_MAX_AGE_MS = 300_000
STALE_CACHE_THRESHOLD_MS = 600_000

Clock = Callable[[], int]


class PerformanceMetrics(TypedDict):
    load_time: float
    render_count: int
    last_activity: int


class EnabledFeatures(TypedDict):
    analytics: bool
    whatsapp: bool
    dark_mode: bool
    multi_language: bool
    page_builder: bool


class AppState(TypedDict):
    is_loading: bool
    error: Optional[str]
    theme: Theme
    language: Language
    current_page: str
    is_menu_open: bool
    active_modal: Optional[str]
    is_authenticated: bool
    session_expiry: Optional[int]
    data_cache: dict[str, Any]
    cache_timestamps: dict[str, int]
    performance_metrics: PerformanceMetrics
    enabled_features: EnabledFeatures


class AppStatePatch(TypedDict, total=False):
    is_loading: bool
    error: Optional[str]
    theme: Theme
    language: Language
    current_page: str
    is_menu_open: bool
    active_modal: Optional[str]
    is_authenticated: bool
    session_expiry: Optional[int]
    data_cache: dict[str, Any]
    cache_timestamps: dict[str, int]
    performance_metrics: PerformanceMetrics
    enabled_features: EnabledFeatures


def system_clock() -> int:
    return int(time.time() * 1000)


def initial_app_state(now: int | None = None) -> AppState:
    return {
        "is_loading": False,
        "error": None,
        "theme": "light",
        "language": "ar",
        "current_page": "/",
        "is_menu_open": False,
        "active_modal": None,
        "is_authenticated": False,
        "session_expiry": None,
        "data_cache": {},
        "cache_timestamps": {},
        "performance_metrics": {
            "load_time": 0,
            "render_count": 0,
            "last_activity": system_clock() if now is None else now,
        },
        "enabled_features": {
            "analytics": True,
            "whatsapp": True,
            "dark_mode": True,
            "multi_language": True,
            "page_builder": True,
        },
    }


class AppStateActions:
    """Field-level operations over a :class:`StateStore` of :class:`AppState`.

    Every mutation goes through the store so listeners observe it.
    Nested mappings are always replaced, never mutated in place.
    """

    def __init__(self, store: StateStore[AppState], clock: Clock = system_clock) -> None:
        self.store = store
        self.clock = clock

    # Loading and errors
    def set_loading(self, is_loading: bool) -> None:
        self.store.set_field("is_loading", bool(is_loading))

    def get_loading(self) -> bool:
        return self.store.get_field("is_loading")

    def set_error(self, error: str | None) -> None:
        self.store.set_field("error", error)

    def get_error(self) -> str | None:
        return self.store.get_field("error")

    def clear_error(self) -> None:
        self.store.set_field("error", None)

    # Theme and language
    def set_theme(self, theme: Theme) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unsupported theme: {theme!r}")
        self.store.set_field("theme", theme)

    def get_theme(self) -> Theme:
        return self.store.get_field("theme")

    def set_language(self, language: Language) -> None:
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language: {language!r}")
        self.store.set_field("language", language)

    def get_language(self) -> Language:
        return self.store.get_field("language")

    # Modals
    def open_modal(self, modal_id: str) -> None:
        self.store.set_field("active_modal", modal_id)

    def close_modal(self) -> None:
        self.store.set_field("active_modal", None)

    def get_active_modal(self) -> str | None:
        return self.store.get_field("active_modal")

    # Authentication
    def set_authenticated(self, is_authenticated: bool) -> None:
        self.store.set_state(
            {
                "is_authenticated": bool(is_authenticated),
                "session_expiry": (
                    self.clock() + SESSION_DURATION_MS if is_authenticated else None
                ),
            }
        )

    def is_authenticated(self) -> bool:
        return self.store.get_field("is_authenticated")

    def is_session_expired(self) -> bool:
        """Return ``True`` when an authenticated session is past its expiry."""
        state = self.store.get_state()
        expiry = state["session_expiry"]
        if not state["is_authenticated"] or expiry is None:
            return False
        return self.clock() > expiry

    def enforce_session_expiry(self) -> bool:
        """Log out an expired session. Returns whether a logout happened."""
        if not self.is_session_expired():
            return False
        self.set_authenticated(False)
        return True

    # Cache
    def set_cache(self, key: str, value: Any) -> None:
        now = self.clock()
        self.store.update(
            lambda state: {
                "data_cache": {**state["data_cache"], key: value},
                "cache_timestamps": {**state["cache_timestamps"], key: now},
            }
        )

    def get_cache(self, key: str, max_age: int = DEFAULT_CACHE_MAX_AGE_MS) -> Any:
        """Return the cached value for ``key`` or ``None`` once it is stale.

        Stale entries are left in place for :meth:`sweep_stale_cache`.
        """
        state = self.store.get_state()
        timestamp = state["cache_timestamps"].get(key)
        if timestamp is None or self.clock() - timestamp > max_age:
            return None
        return state["data_cache"].get(key)

    def clear_cache(self, key: str | None = None) -> None:
        if key is None:
            self.store.set_state({"data_cache": {}, "cache_timestamps": {}})
            return
        self.clear_cache_keys([key])

    def clear_cache_keys(self, keys) -> None:
        drop = set(keys)
        if not drop:
            return
        self.store.update(
            lambda state: {
                "data_cache": {
                    k: v for k, v in state["data_cache"].items() if k not in drop
                },
                "cache_timestamps": {
                    k: v for k, v in state["cache_timestamps"].items() if k not in drop
                },
            }
        )

    def sweep_stale_cache(self, threshold: int = STALE_CACHE_THRESHOLD_MS) -> list[str]:
        """Delete entries older than ``threshold`` and return their keys."""
        now = self.clock()
        timestamps = self.store.get_field("cache_timestamps")
        if not any(now - ts > threshold for ts in timestamps.values()):
            return []

        removed: list[str] = []

        def drop_stale(state):
            # Recomputed under the store lock; a key refreshed meanwhile stays.
            stale = {
                key
                for key, ts in state["cache_timestamps"].items()
                if now - ts > threshold
            }
            removed.extend(sorted(stale))
            return {
                "data_cache": {
                    k: v for k, v in state["data_cache"].items() if k not in stale
                },
                "cache_timestamps": {
                    k: v for k, v in state["cache_timestamps"].items() if k not in stale
                },
            }

        self.store.update(drop_stale)
        return removed

    # Performance
    def increment_render_count(self) -> None:
        now = self.clock()
        self.store.update(
            lambda state: {
                "performance_metrics": {
                    **state["performance_metrics"],
                    "render_count": state["performance_metrics"]["render_count"] + 1,
                    "last_activity": now,
                }
            }
        )

    def set_load_time(self, load_time: float) -> None:
        self.store.update(
            lambda state: {
                "performance_metrics": {
                    **state["performance_metrics"],
                    "load_time": load_time,
                }
            }
        )

    # Feature flags
    def is_feature_enabled(self, feature: str) -> bool:
        features = self.store.get_field("enabled_features")
        if feature not in features:
            raise ValueError(f"Unknown feature: {feature!r}")
        return features[feature]

    def toggle_feature(self, feature: str) -> None:
        if feature not in self.store.get_field("enabled_features"):
            raise ValueError(f"Unknown feature: {feature!r}")
        self.store.update(
            lambda state: {
                "enabled_features": {
                    **state["enabled_features"],
                    feature: not state["enabled_features"][feature],
                }
            }
        )

    # Store passthroughs
    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def get_full_state(self) -> AppState:
        return self.store.get_state()

    def reset(self) -> None:
        self.store.reset()
