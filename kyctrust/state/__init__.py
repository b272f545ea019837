from .app_state import AppState, AppStateActions, AppStatePatch, initial_app_state
from .persistence import LocalStorage, StatePersistence
from .policies import AppStateRuntime, PeriodicTask, attach_persistence, build_app_state
from .store import StateStore

__all__ = [
    "AppState",
    "AppStateActions",
    "AppStatePatch",
    "AppStateRuntime",
    "LocalStorage",
    "PeriodicTask",
    "StatePersistence",
    "StateStore",
    "attach_persistence",
    "build_app_state",
    "initial_app_state",
]
