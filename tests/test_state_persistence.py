import json
import threading

import pytest

from kyctrust.state import (
    LocalStorage,
    PeriodicTask,
    StatePersistence,
    StateStore,
    build_app_state,
    initial_app_state,
)
from kyctrust.state.persistence import STORAGE_KEY


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "local_storage.db")


class BrokenStorage:
    def get_item(self, key):
        raise OSError("disk unavailable")

    def set_item(self, key, value):
        raise OSError("quota exceeded")

    def remove_item(self, key):
        raise OSError("disk unavailable")


def test_local_storage_round_trip(storage):
    assert storage.get_item("missing") is None

    storage.set_item("k", "v1")
    storage.set_item("k", "v2")
    assert storage.get_item("k") == "v2"

    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_save_writes_only_persisted_fields(storage):
    state = initial_app_state(now=0)
    state.update(theme="dark", is_authenticated=True, data_cache={"k": 1})

    assert StatePersistence(storage).save(state) is True

    saved = json.loads(storage.get_item(STORAGE_KEY))
    assert set(saved) == {"theme", "language", "enabled_features"}
    assert saved["theme"] == "dark"


def test_load_seeds_store(storage):
    storage.set_item(
        STORAGE_KEY,
        json.dumps(
            {
                "theme": "dark",
                "language": "en",
                "enabled_features": {"whatsapp": False, "unknown": True},
                "is_authenticated": True,
            }
        ),
    )
    store = StateStore(initial_app_state(now=0))

    assert StatePersistence(storage).load(store) is True

    state = store.get_state()
    assert state["theme"] == "dark"
    assert state["language"] == "en"
    assert state["enabled_features"]["whatsapp"] is False
    assert "unknown" not in state["enabled_features"]
    assert state["is_authenticated"] is False


def test_load_ignores_invalid_values(storage):
    storage.set_item(STORAGE_KEY, json.dumps({"theme": "purple", "language": "fr"}))
    store = StateStore(initial_app_state(now=0))

    assert StatePersistence(storage).load(store) is False
    assert store.get_field("theme") == "light"


def test_corrupt_storage_falls_back_to_defaults(storage, caplog):
    storage.set_item(STORAGE_KEY, "{not json")
    store = StateStore(initial_app_state(now=0))

    assert StatePersistence(storage).load(store) is False
    assert store.get_state() == initial_app_state(now=0)
    assert "Failed to load state" in caplog.text


def test_storage_failures_are_contained(caplog):
    persistence = StatePersistence(BrokenStorage())
    store = StateStore(initial_app_state(now=0))

    assert persistence.save(store.get_state()) is False
    assert persistence.load(store) is False
    persistence.clear()

    assert "quota exceeded" in caplog.text


def test_runtime_persists_changes_and_reloads(storage, clock):
    runtime = build_app_state(storage, clock)
    runtime.actions.set_theme("dark")
    runtime.actions.set_cache("services", [1, 2])
    runtime.stop()

    reloaded = build_app_state(storage, clock)

    assert reloaded.actions.get_theme() == "dark"
    assert reloaded.actions.get_cache("services") is None


def test_runtime_accepts_storage_path(tmp_path, clock):
    path = tmp_path / "nested" / "state.db"

    runtime = build_app_state(path, clock)
    runtime.actions.set_language("en")

    assert build_app_state(path, clock).actions.get_language() == "en"


def test_stopped_runtime_no_longer_persists(storage, clock):
    runtime = build_app_state(storage, clock)
    runtime.stop()

    runtime.actions.set_theme("dark")

    assert build_app_state(storage, clock).actions.get_theme() == "light"


def test_in_memory_runtime_has_no_persistence(clock):
    runtime = build_app_state(clock=clock)

    assert runtime.persistence is None
    assert runtime.restore() is False


def test_runtime_sweep_uses_threshold(clock):
    runtime = build_app_state(clock=clock, sweep_threshold=1000)
    runtime.actions.set_cache("k", "v")
    clock.advance(1001)

    assert runtime.sweep_cache() == ["k"]


def test_periodic_task_runs_until_stopped():
    ran = threading.Event()
    task = PeriodicTask(0.01, ran.set, name="test-task")

    task.start()
    try:
        assert ran.wait(2.0)
        assert task.running
    finally:
        task.stop()

    assert not task.running


def test_periodic_task_contains_callback_errors(caplog):
    def broken():
        raise RuntimeError("sweep failed")

    PeriodicTask(1, broken, name="broken-task").run_once()

    assert "broken-task" in caplog.text


def test_periodic_task_requires_positive_interval():
    with pytest.raises(ValueError):
        PeriodicTask(0, lambda: None, name="bad")
