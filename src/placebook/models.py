"""
Art records - the unit of persistence.

A record is a geotagged placed object (flower, message, painting, drawing).
Records are immutable once built; the JSON wire form uses the camelCase keys
the backend and the local snapshot share.
"""

import logging
import math
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidArtRecordError
from .geo import distance_meters, is_valid_coordinate

logger = logging.getLogger(__name__)

TRANSFORM_SIZE = 16
ID_RANDOM_LENGTH = 9
_BASE36 = string.digits + string.ascii_lowercase


class Audience(str, Enum):
    """Who may see a record."""
    PUBLIC = "public"
    FRIENDS = "friends"


class ArtType(str, Enum):
    """Kind of placed art. Selects which art_data keys are meaningful."""
    FLOWER = "flower"
    MESSAGE = "message"
    PAINTING = "painting"
    DRAWING = "drawing"


# Documented art_data keys per type: key -> expected python type.
# Keys not listed here pass through untouched.
ART_DATA_KEYS: Dict[ArtType, Dict[str, type]] = {
    ArtType.FLOWER: {"color": str},
    ArtType.MESSAGE: {"text": str},
    ArtType.PAINTING: {"imageData": str},
    ArtType.DRAWING: {"imageData": str},
}

IMAGE_DATA_PREFIX = "data:image/"


def random_base36(length: int = ID_RANDOM_LENGTH) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


def generate_id(prefix: str = "flower") -> str:
    """Build a client-side id: {prefix}_{unixMillis}_{random base36}."""
    return f"{prefix}_{int(time.time() * 1000)}_{random_base36()}"


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Position:
    """A GPS fix as delivered by the device's geolocation collaborator."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    altitude: Optional[float] = None
    timestamp: Optional[str] = None

    def validate(self) -> None:
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise InvalidArtRecordError(
                f"Position needs finite latitude/longitude, got ({self.latitude!r}, {self.longitude!r})"
            )


def parse_audience(value: Any) -> Audience:
    try:
        return Audience(value)
    except ValueError:
        raise InvalidArtRecordError(f"Unknown audience: {value!r}") from None


def parse_art_type(value: Any) -> ArtType:
    try:
        return ArtType(value)
    except ValueError:
        raise InvalidArtRecordError(f"Unknown art type: {value!r}") from None


def validate_transform(transform: Sequence[Any]) -> Tuple[float, ...]:
    """Check a flattened 4x4 matrix and return it as a tuple of floats."""
    if transform is None or isinstance(transform, (str, bytes, Mapping)):
        raise InvalidArtRecordError("transform must be a sequence of 16 numbers")
    values = tuple(transform)
    if len(values) != TRANSFORM_SIZE:
        raise InvalidArtRecordError(
            f"transform must have {TRANSFORM_SIZE} elements, got {len(values)}"
        )
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            raise InvalidArtRecordError(f"transform element is not a finite number: {v!r}")
    return tuple(float(v) for v in values)


def validate_art_data(art_type: ArtType, art_data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Validate the type-specific payload at the boundary.

    Returns a plain dict copy. Documented keys must have the documented
    type; image payloads must be data URIs.
    """
    if art_data is None:
        return {}
    if not isinstance(art_data, Mapping):
        raise InvalidArtRecordError("artData must be a mapping")
    data = dict(art_data)
    for key, expected in ART_DATA_KEYS[art_type].items():
        if key in data and not isinstance(data[key], expected):
            raise InvalidArtRecordError(
                f"artData.{key} for {art_type.value} must be {expected.__name__}"
            )
    image = data.get("imageData")
    if art_type in (ArtType.PAINTING, ArtType.DRAWING) and image is not None:
        if not image.startswith(IMAGE_DATA_PREFIX):
            raise InvalidArtRecordError("artData.imageData must be a data:image/ URI")
    return data


def _optional_float(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArtRecordError(f"{name} must be a number or null")
    return float(value)


@dataclass(frozen=True)
class ArtRecord:
    """A geotagged placed art object."""

    id: str
    latitude: float
    longitude: float
    creator_id: str
    transform: Tuple[float, ...]
    timestamp: str = field(default_factory=utc_now_iso)
    accuracy: Optional[float] = None
    altitude: Optional[float] = None
    audience: Audience = Audience.PUBLIC
    art_type: ArtType = ArtType.FLOWER
    # Excluded from the hash so records can live in sets; still compared by ==
    art_data: Dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise InvalidArtRecordError(
                f"Record {self.id!r} has invalid coordinates ({self.latitude!r}, {self.longitude!r})"
            )
        if not self.id or not isinstance(self.id, str):
            raise InvalidArtRecordError("Record id must be a non-empty string")
        if not self.creator_id or not isinstance(self.creator_id, str):
            raise InvalidArtRecordError(f"Record {self.id!r} is missing creatorId")

    @classmethod
    def create(
        cls,
        position: Position,
        transform: Sequence[float],
        creator_id: str,
        audience: Any = Audience.PUBLIC,
        art_type: Any = ArtType.FLOWER,
        art_data: Optional[Mapping[str, Any]] = None,
    ) -> "ArtRecord":
        """Build a fresh record at a position with a locally generated id."""
        position.validate()
        kind = parse_art_type(art_type)
        return cls(
            id=generate_id(),
            latitude=float(position.latitude),
            longitude=float(position.longitude),
            accuracy=_optional_float(position.accuracy, "accuracy"),
            altitude=_optional_float(position.altitude, "altitude"),
            timestamp=utc_now_iso(),
            transform=validate_transform(transform),
            audience=parse_audience(audience),
            creator_id=creator_id,
            art_type=kind,
            art_data=validate_art_data(kind, art_data),
        )

    def is_visible_to(self, user_id: Optional[str], include_private: bool = True) -> bool:
        """Audience rule: private view, public record, or own record."""
        return (
            include_private
            or self.audience is Audience.PUBLIC
            or self.creator_id == user_id
        )

    def distance_to(self, latitude: float, longitude: float) -> float:
        return distance_meters(latitude, longitude, self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        """JSON wire form (camelCase keys)."""
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "altitude": self.altitude,
            "timestamp": self.timestamp,
            "transform": list(self.transform),
            "audience": self.audience.value,
            "creatorId": self.creator_id,
            "artType": self.art_type.value,
            "artData": dict(self.art_data),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ArtRecord":
        """
        Decode the wire form. Accepts the legacy "matrix" key for transform.

        Raises:
            InvalidArtRecordError: if required fields are missing or invalid
        """
        if not isinstance(data, Mapping):
            raise InvalidArtRecordError(f"Record must be an object, got {type(data).__name__}")
        if "latitude" not in data or "longitude" not in data:
            raise InvalidArtRecordError("Record is missing latitude/longitude")
        kind = parse_art_type(data.get("artType", ArtType.FLOWER.value))
        transform = data.get("transform", data.get("matrix"))
        try:
            return cls(
                id=data.get("id") or "",
                latitude=data["latitude"],
                longitude=data["longitude"],
                accuracy=_optional_float(data.get("accuracy"), "accuracy"),
                altitude=_optional_float(data.get("altitude"), "altitude"),
                timestamp=data.get("timestamp") or utc_now_iso(),
                transform=validate_transform(transform),
                audience=parse_audience(data.get("audience", Audience.PUBLIC.value)),
                creator_id=data.get("creatorId") or "",
                art_type=kind,
                art_data=validate_art_data(kind, data.get("artData")),
            )
        except TypeError as e:
            raise InvalidArtRecordError(str(e)) from e


def records_from_json(items: Any, source: str) -> List[ArtRecord]:
    """
    Decode a JSON array of records, dropping entries that fail validation.

    A non-list payload is a malformed response and raises InvalidArtRecordError.
    """
    if not isinstance(items, list):
        raise InvalidArtRecordError(f"{source} returned {type(items).__name__}, expected a list")
    out = []
    for item in items:
        try:
            out.append(ArtRecord.from_dict(item))
        except InvalidArtRecordError as e:
            logger.warning("Dropping invalid record from %s: %s", source, e)
    return out


def records_to_json(records: Sequence[ArtRecord]) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in records]
