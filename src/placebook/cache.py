"""
Local cache - the offline replica of the art collection.

Holds one snapshot (a JSON array of records) under a single storage key.
The snapshot is replaced wholesale on every successful remote read and
grows by merge-append when a save has to fall back to local storage.
"""

import json
import logging
from typing import List, Sequence

from .errors import InvalidArtRecordError, LocalStorageError
from .models import ArtRecord, records_from_json, records_to_json
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "gpsFlowers"


class LocalCache:
    """Snapshot store on top of a KeyValueStore."""

    def __init__(self, store: KeyValueStore, key: str = SNAPSHOT_KEY):
        self._store = store
        self._key = key

    def read_snapshot(self) -> List[ArtRecord]:
        """
        Load the cached records.

        Returns:
            The records, or an empty list when nothing is cached

        Raises:
            LocalStorageError: storage unreadable or snapshot corrupt
        """
        raw = self._store.get(self._key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            records = records_from_json(data, "local cache")
        except (json.JSONDecodeError, InvalidArtRecordError) as e:
            raise LocalStorageError(f"Cached snapshot is corrupt: {e}") from e
        logger.debug("Loaded %d records from local cache", len(records))
        return records

    def write_snapshot(self, records: Sequence[ArtRecord]) -> None:
        """Replace the snapshot with records."""
        try:
            raw = json.dumps(records_to_json(records))
        except (TypeError, ValueError) as e:
            raise LocalStorageError(f"Cannot serialize snapshot: {e}") from e
        self._store.set(self._key, raw)
        logger.debug("Saved %d records to local cache", len(records))

    def append(self, record: ArtRecord) -> List[ArtRecord]:
        """Merge one record into the existing snapshot and return the new snapshot."""
        records = self.read_snapshot()
        records.append(record)
        self.write_snapshot(records)
        return records

    def clear(self) -> None:
        self._store.delete(self._key)
