"""
Placebook - geotagged art that survives a flaky network

Drop flowers, messages, paintings and drawings at a GPS position, find the
ones near you, and keep working when the shared backend is unreachable.
"""

__version__ = "0.1.0"

from .geo import distance_meters, is_valid_coordinate
from .models import ArtRecord, ArtType, Audience, Position
from .errors import (
    FailureKind,
    InvalidArtRecordError,
    LocalStorageError,
    Outcome,
    PlacebookError,
    RemoteStoreError,
)
from .storage import (
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
)
from .identity import IdentityProvider
from .cache import LocalCache
from .remote import RemoteStoreClient
from .repository import ArtRepository
from .geolocation import PositionWatcher, SubscriptionHandle
from .config import ConfigManager, PlacebookConfig, build_repository

__all__ = [
    "distance_meters",
    "is_valid_coordinate",
    "ArtRecord",
    "ArtType",
    "Audience",
    "Position",
    "FailureKind",
    "InvalidArtRecordError",
    "LocalStorageError",
    "Outcome",
    "PlacebookError",
    "RemoteStoreError",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "IdentityProvider",
    "LocalCache",
    "RemoteStoreClient",
    "ArtRepository",
    "PositionWatcher",
    "SubscriptionHandle",
    "ConfigManager",
    "PlacebookConfig",
    "build_repository",
]
