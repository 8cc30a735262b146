"""Tests for the Supabase session store."""

from dataclasses import dataclass, field

import pytest

from dream_bot.adapters.supabase_session_store import SupabaseSessionStore


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "upsert": []}
    )
    payloads: list[object] = field(default_factory=list)
    last_filters: list[tuple[str, object]] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def upsert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.payloads.append(payload)
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_ingest_is_buffered_until_flush() -> None:
    client = FakeSupabaseClient()
    table = client.table("sd-bot")
    table.queue("upsert", [{"id": "job-1"}, {"id": "job-2"}])
    store = SupabaseSessionStore(client)

    store.ingest("sd-bot", [{"id": "job-1", "data": {"a": 1}}])
    store.ingest("sd-bot", [{"id": "job-2", "data": {"a": 2}}])
    assert table.payloads == []

    store.flush()

    assert table.payloads == [
        [{"id": "job-1", "data": {"a": 1}}, {"id": "job-2", "data": {"a": 2}}]
    ]
    assert store.pending == {}


def test_failed_flush_keeps_rows_buffered() -> None:
    client = FakeSupabaseClient()
    store = SupabaseSessionStore(client)
    store.ingest("sd-bot", [{"id": "job-1", "data": {}}])

    with pytest.raises(RuntimeError):
        store.flush()

    assert store.pending == {"sd-bot": [{"id": "job-1", "data": {}}]}


def test_query_filters_by_id() -> None:
    client = FakeSupabaseClient()
    table = client.table("sd-bot")
    table.queue("select", [{"id": "job-1", "data": {"schema_version": 1}}])
    store = SupabaseSessionStore(client)

    rows = store.query("sd-bot", "job-1")

    assert rows == [{"id": "job-1", "data": {"schema_version": 1}}]
    assert table.last_filters == [("id", "job-1")]


def test_query_without_rows_returns_empty_list() -> None:
    store = SupabaseSessionStore(FakeSupabaseClient())

    assert store.query("sd-bot", "missing") == []
