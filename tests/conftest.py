"""
Shared test fixtures for placebook test suite.

Provides storage-backed collaborators plus two remote doubles:
an in-process backend that behaves like the real server, and a remote
that fails every call.
"""

import json

import pytest
from unittest.mock import AsyncMock

from placebook.cache import LocalCache
from placebook.errors import RemoteUnavailableError
from placebook.identity import IdentityProvider
from placebook.models import Position
from placebook.repository import ArtRepository
from placebook.server.collection import ArtCollection
from placebook.storage import MemoryKeyValueStore

IDENTITY_TRANSFORM = [1.0, 0.0, 0.0, 0.0,
                      0.0, 1.0, 0.0, 0.0,
                      0.0, 0.0, 1.0, 0.0,
                      0.0, 0.0, 0.0, 1.0]

# Roughly meters per degree of latitude
M_PER_DEG_LAT = 111_195.0


def offset_north(position: Position, meters: float) -> Position:
    """Position `meters` due north of `position`."""
    return Position(latitude=position.latitude + meters / M_PER_DEG_LAT, longitude=position.longitude)


class InProcessRemote:
    """
    Remote double backed by the real server collection.

    Payloads go through json round-trips so the repository sees exactly
    what it would get over HTTP.
    """

    def __init__(self, collection=None):
        self.collection = collection if collection is not None else ArtCollection()
        self.calls = []

    @staticmethod
    def _wire(data):
        return json.loads(json.dumps(data))

    async def create(self, record):
        self.calls.append("create")
        return self._wire(self.collection.add(self._wire(record.to_dict())))

    async def list_all(self):
        self.calls.append("list_all")
        return self._wire(self.collection.all())

    async def list_nearby(self, lat, lng, distance_meters):
        self.calls.append("list_nearby")
        return self._wire(self.collection.nearby(lat, lng, distance_meters))

    async def delete_all(self):
        self.calls.append("delete_all")
        self.collection.clear()
        return {"message": "All flowers deleted"}

    async def close(self):
        pass


def make_failing_remote(error=None):
    """Remote whose every call raises (default: backend unreachable)."""
    error = error or RemoteUnavailableError("connection refused")
    remote = AsyncMock()
    for name in ("create", "list_all", "list_nearby", "delete_all"):
        getattr(remote, name).side_effect = error
    remote.close = AsyncMock(return_value=None)
    return remote


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def identity(kv_store):
    return IdentityProvider(kv_store)


@pytest.fixture
def cache(kv_store):
    return LocalCache(kv_store)


@pytest.fixture
def here():
    return Position(latitude=51.5007, longitude=-0.1246, accuracy=5.0)


@pytest.fixture
def online_remote():
    return InProcessRemote()


@pytest.fixture
def offline_remote():
    return make_failing_remote()


@pytest.fixture
def online_repo(identity, cache, online_remote):
    return ArtRepository(identity=identity, cache=cache, remote=online_remote)


@pytest.fixture
def offline_repo(identity, cache, offline_remote):
    return ArtRepository(identity=identity, cache=cache, remote=offline_remote)
