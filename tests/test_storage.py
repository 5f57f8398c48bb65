"""Tests for storage module - key-value backends."""

import pytest

from placebook.errors import LocalStorageError
from placebook.storage import (
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    open_store,
)


@pytest.fixture(params=["memory", "sqlite", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        s = MemoryKeyValueStore()
    elif request.param == "sqlite":
        s = SqliteKeyValueStore(tmp_path / "kv.db")
    else:
        s = JsonFileKeyValueStore(tmp_path / "kv")
    yield s
    s.close()


class TestKeyValueContract:
    """Every backend behaves the same."""

    def test_missing_key_is_none(self, store):
        assert store.get("gpsFlowers") is None

    def test_set_then_get(self, store):
        store.set("gpsFlowers", "[]")
        assert store.get("gpsFlowers") == "[]"

    def test_set_replaces(self, store):
        store.set("placebook_user_id", "user_a")
        store.set("placebook_user_id", "user_b")
        assert store.get("placebook_user_id") == "user_b"

    def test_delete(self, store):
        store.set("gpsFlowers", "[]")
        store.delete("gpsFlowers")
        assert store.get("gpsFlowers") is None

    def test_delete_missing_is_noop(self, store):
        store.delete("never_set")

    def test_keys_independent(self, store):
        store.set("a", "1")
        store.set("b", "2")
        store.delete("a")
        assert store.get("b") == "2"


class TestPersistence:

    def test_sqlite_survives_reopen(self, tmp_path):
        first = SqliteKeyValueStore(tmp_path / "kv.db")
        first.set("placebook_user_id", "user_1")
        first.close()
        assert SqliteKeyValueStore(tmp_path / "kv.db").get("placebook_user_id") == "user_1"

    def test_json_survives_reopen(self, tmp_path):
        JsonFileKeyValueStore(tmp_path).set("gpsFlowers", '[{"id": 1}]')
        assert JsonFileKeyValueStore(tmp_path).get("gpsFlowers") == '[{"id": 1}]'


class TestFailures:

    def test_json_rejects_path_like_keys(self, tmp_path):
        with pytest.raises(LocalStorageError):
            JsonFileKeyValueStore(tmp_path).set("../escape", "x")

    def test_sqlite_unopenable_path(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(LocalStorageError):
            SqliteKeyValueStore(blocker / "kv.db").get("k")

    def test_sqlite_errors_wrapped(self, tmp_path):
        store = SqliteKeyValueStore(tmp_path / "kv.db")
        store.set("k", "v")
        store._conn.close()
        with pytest.raises(LocalStorageError):
            store.get("k")

    def test_memory_rejects_non_string(self):
        with pytest.raises(LocalStorageError):
            MemoryKeyValueStore().set("k", 5)


class TestOpenStore:

    def test_memory(self):
        assert isinstance(open_store("memory"), MemoryKeyValueStore)

    def test_sqlite(self, tmp_path):
        assert isinstance(open_store("sqlite", tmp_path / "kv.db"), SqliteKeyValueStore)

    def test_json(self, tmp_path):
        assert isinstance(open_store("json", tmp_path), JsonFileKeyValueStore)

    def test_unknown(self, tmp_path):
        with pytest.raises(ValueError):
            open_store("redis", tmp_path)

    def test_path_required(self):
        with pytest.raises(ValueError):
            open_store("sqlite")
