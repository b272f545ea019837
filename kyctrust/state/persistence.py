"""Durable local storage for the persisted slice of application state."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping

from .app_state import LANGUAGES, THEMES
from .store import StateStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "kyctrust_app_state"
PERSISTED_FIELDS = ("theme", "language", "enabled_features")


class LocalStorage:
    """SQLite-backed string key/value store."""

    def __init__(self, database_path: str | Path) -> None:
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def get_item(self, key: str) -> str | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM local_storage WHERE key = ?", (key,)
            ).fetchone()
        return row["value"] if row is not None else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO local_storage (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value),
            )
            conn.commit()

    def remove_item(self, key: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            conn.commit()


def _restorable_fields(saved: Mapping[str, Any], current: Mapping[str, Any]) -> dict:
    """Return the saved fields that are valid for the current state."""
    patch: dict[str, Any] = {}
    if saved.get("theme") in THEMES:
        patch["theme"] = saved["theme"]
    if saved.get("language") in LANGUAGES:
        patch["language"] = saved["language"]
    features = saved.get("enabled_features")
    known = current.get("enabled_features")
    if isinstance(features, dict) and isinstance(known, dict):
        patch["enabled_features"] = {
            **known,
            **{
                name: value
                for name, value in features.items()
                if name in known and isinstance(value, bool)
            },
        }
    return {field: value for field, value in patch.items() if field in current}


class StatePersistence:
    """Save and restore ``PERSISTED_FIELDS`` of a state snapshot.

    Cache, authentication and transient UI fields are never written.  Storage
    and parse failures are logged as warnings and leave in-memory state alone.
    """

    def __init__(self, storage: LocalStorage, key: str = STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key

    def save(self, state: Mapping[str, Any]) -> bool:
        try:
            persistable = {
                field: state[field] for field in PERSISTED_FIELDS if field in state
            }
            self.storage.set_item(self.key, json.dumps(persistable))
        except Exception as exc:
            logger.warning("Failed to save state to local storage: %s", exc)
            return False
        return True

    def load(self, store: StateStore) -> bool:
        """Merge the persisted fields into ``store``. Returns whether it did."""
        try:
            saved = self.storage.get_item(self.key)
            if not saved:
                return False
            parsed = json.loads(saved)
            if not isinstance(parsed, dict):
                raise ValueError("persisted state is not an object")
            patch = _restorable_fields(parsed, store.get_state())
            if not patch:
                return False
            store.set_state(patch)
        except Exception as exc:
            logger.warning("Failed to load state from local storage: %s", exc)
            return False
        return True

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except Exception as exc:
            logger.warning("Failed to clear state from local storage: %s", exc)


__all__ = ["LocalStorage", "PERSISTED_FIELDS", "STORAGE_KEY", "StatePersistence"]
