import sys
import uuid
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import kyctrust as kyctrust_module
from kyctrust import create_app


class FakeQuery:
    def __init__(self, supabase, table_name):
        self.supabase = supabase
        self.table_name = table_name
        self._operation = None
        self._payload = None
        self._filters = []
        self._limit = None
        self._select = "*"

    def select(self, columns="*"):
        self._operation = "select"
        self._select = columns
        return self

    def insert(self, rows):
        self._operation = "insert"
        self._payload = rows
        return self

    def update(self, payload):
        self._operation = "update"
        self._payload = payload
        return self

    def delete(self):
        self._operation = "delete"
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def order(self, *args, **kwargs):
        return self

    def limit(self, value):
        self._limit = value
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self._filters)

    def execute(self):
        self.supabase.calls.append((self.table_name, self._operation, list(self._filters)))
        if self.table_name in self.supabase.failures:
            raise RuntimeError(f"connection to {self.table_name} refused")

        table = self.supabase.tables.setdefault(self.table_name, [])

        if self._operation == "select":
            data = [dict(row) for row in table if self._matches(row)]
            if self._limit is not None:
                data = data[: self._limit]
            if self._select != "*":
                columns = [col.strip() for col in self._select.split(",")]
                data = [
                    {col: row.get(col) for col in columns if col in row}
                    for row in data
                ]
            return SimpleNamespace(data=data, count=len(data))

        if self._operation == "insert":
            rows = self._payload
            if isinstance(rows, dict):
                rows = [rows]
            inserted = []
            for row in rows:
                new_row = dict(row)
                new_row.setdefault("id", str(uuid.uuid4()))
                table.append(new_row)
                inserted.append(dict(new_row))
            return SimpleNamespace(data=inserted, count=len(inserted))

        if self._operation == "update":
            updated = []
            for row in table:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated, count=len(updated))

        if self._operation == "delete":
            deleted = [row for row in table if self._matches(row)]
            self.supabase.tables[self.table_name] = [
                row for row in table if not self._matches(row)
            ]
            return SimpleNamespace(data=deleted, count=len(deleted))

        return SimpleNamespace(data=None, count=None)


class FakeSupabase:
    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.failures: set[str] = set()
        self.calls: list[tuple] = []

    def table(self, name):
        return FakeQuery(self, name)

    def mutations(self):
        return [call for call in self.calls if call[1] != "select"]


TEST_CONFIG = {
    "TESTING": True,
    "SUPABASE_URL": "http://localhost",
    "SUPABASE_SERVICE_KEY": "service",
    "SUPABASE_ANON_KEY": "anon",
}


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def app(monkeypatch, fake_supabase):
    monkeypatch.setattr(kyctrust_module, "create_client", lambda url, key: fake_supabase)
    return create_app(dict(TEST_CONFIG))


@pytest.fixture
def client(app):
    return app.test_client()


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, milliseconds):
        self.now += milliseconds


@pytest.fixture
def clock():
    return FakeClock()
