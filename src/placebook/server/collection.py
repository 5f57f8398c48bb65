"""
Art collection - the backend's authoritative store.

Records are kept in memory and persisted to one JSON file after each
mutation. Nearby queries are a linear Haversine scan; audience is not
filtered here, clients apply the audience rule themselves.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..atomic_write import atomic_json_write
from ..errors import InvalidArtRecordError
from ..geo import is_valid_coordinate, within_radius
from ..models import ArtRecord, generate_id, utc_now_iso

logger = logging.getLogger(__name__)


class ArtCollection:
    """In-memory record list with optional JSON file persistence."""

    def __init__(self, data_file: Union[str, Path, None] = None):
        self.data_file = Path(data_file) if data_file else None
        self._records: List[Dict[str, Any]] = []
        self._load()

    def _load(self) -> None:
        if self.data_file is None:
            return
        if not self.data_file.exists():
            self._save()
            logger.info("Created new storage file %s", self.data_file)
            return
        try:
            data = json.loads(self.data_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error loading records from %s: %s", self.data_file, e)
            return
        if not isinstance(data, list):
            logger.error("Storage file %s does not hold a list, starting empty", self.data_file)
            return
        self._records = [r for r in data if isinstance(r, dict)]
        logger.info("Loaded %d records from storage", len(self._records))

    def _save(self) -> None:
        if self.data_file is None:
            return
        try:
            atomic_json_write(self.data_file, self._records)
            logger.debug("Saved %d records to storage", len(self._records))
        except (OSError, TypeError, ValueError) as e:
            logger.error("Error saving records to %s: %s", self.data_file, e)

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> List[Dict[str, Any]]:
        return list(self._records)

    def add(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate and store a new record, assigning id/timestamp when absent.

        Raises:
            InvalidArtRecordError: coordinates or creatorId missing, or any
                other field invalid
        """
        if not isinstance(payload, Mapping):
            raise InvalidArtRecordError("Record must be a JSON object")
        if not is_valid_coordinate(payload.get("latitude"), payload.get("longitude")):
            raise InvalidArtRecordError("Missing required flower data")
        if not payload.get("creatorId"):
            raise InvalidArtRecordError("Missing creatorId")

        data = dict(payload)
        data["id"] = data.get("id") or generate_id()
        data["timestamp"] = data.get("timestamp") or utc_now_iso()
        if "transform" not in data and "matrix" not in data:
            data["transform"] = [1.0 if i % 5 == 0 else 0.0 for i in range(16)]

        stored = ArtRecord.from_dict(data).to_dict()
        self._records.append(stored)
        self._save()
        return stored

    def nearby(self, lat: float, lng: float, distance_meters: float) -> List[Dict[str, Any]]:
        out = []
        for record in self._records:
            r_lat, r_lng = record.get("latitude"), record.get("longitude")
            if not is_valid_coordinate(r_lat, r_lng):
                continue
            if within_radius(lat, lng, r_lat, r_lng, distance_meters):
                out.append(record)
        return out

    def clear(self) -> None:
        self._records = []
        self._save()


def parse_float(value: Optional[str]) -> Optional[float]:
    """Query-string number or None if missing/not numeric/not finite."""
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
