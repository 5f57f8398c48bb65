"""Tests for cache module - local snapshot of art records."""

import pytest

from placebook.cache import SNAPSHOT_KEY, LocalCache
from placebook.errors import LocalStorageError
from placebook.models import ArtRecord, Position
from placebook.storage import JsonFileKeyValueStore, MemoryKeyValueStore

from conftest import IDENTITY_TRANSFORM


def make_record(lat=1.0, creator="user_1"):
    return ArtRecord.create(Position(latitude=lat, longitude=2.0), IDENTITY_TRANSFORM, creator_id=creator)


class TestSnapshot:

    def test_empty_cache_reads_empty(self, cache):
        assert cache.read_snapshot() == []

    def test_write_then_read(self, cache):
        records = [make_record(1.0), make_record(2.0)]
        cache.write_snapshot(records)
        assert cache.read_snapshot() == records

    def test_write_replaces(self, cache):
        cache.write_snapshot([make_record(1.0), make_record(2.0)])
        only = make_record(3.0)
        cache.write_snapshot([only])
        assert cache.read_snapshot() == [only]

    def test_append_merges(self, cache):
        first = make_record(1.0)
        cache.write_snapshot([first])
        second = make_record(2.0)
        assert cache.append(second) == [first, second]
        assert cache.read_snapshot() == [first, second]

    def test_append_to_empty(self, cache):
        r = make_record()
        cache.append(r)
        assert cache.read_snapshot() == [r]

    def test_clear(self, cache, kv_store):
        cache.write_snapshot([make_record()])
        cache.clear()
        assert kv_store.get(SNAPSHOT_KEY) is None
        assert cache.read_snapshot() == []

    def test_persisted_in_file_store(self, tmp_path):
        r = make_record()
        LocalCache(JsonFileKeyValueStore(tmp_path)).write_snapshot([r])
        assert LocalCache(JsonFileKeyValueStore(tmp_path)).read_snapshot() == [r]


class TestCorruption:

    def test_undecodable_snapshot(self):
        cache = LocalCache(MemoryKeyValueStore({SNAPSHOT_KEY: "{not json"}))
        with pytest.raises(LocalStorageError):
            cache.read_snapshot()

    def test_non_list_snapshot(self):
        cache = LocalCache(MemoryKeyValueStore({SNAPSHOT_KEY: '{"a": 1}'}))
        with pytest.raises(LocalStorageError):
            cache.read_snapshot()

    def test_invalid_entries_dropped(self, cache, kv_store):
        good = make_record()
        cache.write_snapshot([good])
        kv_store.set(SNAPSHOT_KEY, kv_store.get(SNAPSHOT_KEY)[:-1] + ', {"latitude": null}]')
        assert cache.read_snapshot() == [good]
