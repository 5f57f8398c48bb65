"""
Art repository - offline-first store for geotagged art.

Composes the identity provider, local cache, remote store client and geo
math. Every operation follows the same dual-path policy:

1. Try the remote backend first
2. On any remote failure (transport, non-2xx, malformed body) fall back to
   the local path
3. Never raise remote or storage failures to the caller; they are logged
   and recorded in ``last_outcome``

Only caller mistakes (invalid position, transform or art data) raise, and
they raise before any I/O happens.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from .cache import LocalCache
from .errors import InvalidArtRecordError, Outcome, attempt_local, attempt_remote
from .identity import IdentityProvider
from .models import ArtRecord, Position, records_from_json
from .remote import RemoteStoreClient

logger = logging.getLogger(__name__)

DEFAULT_NEARBY_DISTANCE_M = 20.0


class ArtRepository:
    """
    In-memory art list kept consistent with a remote store and a local cache.

    Not safe for concurrent calls: await one operation before starting the
    next on the same instance.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        cache: LocalCache,
        remote: RemoteStoreClient,
    ):
        self._identity = identity
        self._cache = cache
        self._remote = remote
        self._art: List[ArtRecord] = []
        self.last_outcome: Optional[Outcome] = None

    @property
    def art(self) -> List[ArtRecord]:
        """Snapshot copy of the in-memory list."""
        return list(self._art)

    @property
    def user_id(self) -> str:
        return self._identity.get_or_create_user_id()

    async def close(self) -> None:
        await self._remote.close()

    def _decode_remote(self, payload: Any, source: str) -> Outcome[List[ArtRecord]]:
        """Decode a remote list payload; a bad shape counts as a remote failure."""
        try:
            return Outcome.ok(records_from_json(payload, source))
        except InvalidArtRecordError as e:
            logger.warning("Malformed response from %s: %s", source, e)
            return Outcome.remote_failed(f"malformed response: {e}")

    async def save_art(
        self,
        position: Position,
        transform: Sequence[float],
        audience: Any = "public",
        art_type: Any = "flower",
        art_data: Optional[Mapping[str, Any]] = None,
    ) -> ArtRecord:
        """
        Place a new record at position.

        Returns the server's version of the record when the backend accepts
        it (the server may reassign id/timestamp), otherwise the locally built
        record after merging it into the cache snapshot.

        Raises:
            InvalidArtRecordError: position/transform/audience/type/data invalid
        """
        record = ArtRecord.create(
            position,
            transform,
            creator_id=self.user_id,
            audience=audience,
            art_type=art_type,
            art_data=art_data,
        )

        outcome = await attempt_remote(lambda: self._remote.create(record), "create")
        if outcome.is_ok:
            try:
                saved = ArtRecord.from_dict(outcome.value)
            except InvalidArtRecordError as e:
                logger.warning("Server returned an invalid record, keeping local copy: %s", e)
                outcome = Outcome.remote_failed(f"malformed response: {e}")
            else:
                self._art.append(saved)
                self.last_outcome = outcome
                return saved

        logger.warning("Falling back to local storage for %s %s", record.art_type.value, record.id)
        local = attempt_local(lambda: self._cache.append(record), "append")
        self._art.append(record)
        self.last_outcome = local if local.is_local_failure else outcome
        return record

    async def get_nearby_art(
        self,
        position: Position,
        distance_threshold_meters: float = DEFAULT_NEARBY_DISTANCE_M,
        include_private: bool = True,
    ) -> List[ArtRecord]:
        """
        Records within distance_threshold_meters of position that the current
        user may see.

        Remote path: the server filters by distance, its full result replaces
        the in-memory list. Fallback: Haversine filter over the in-memory list.
        The audience rule is applied the same way on both paths.
        """
        position.validate()
        user_id = self.user_id

        outcome = await attempt_remote(
            lambda: self._remote.list_nearby(
                position.latitude, position.longitude, distance_threshold_meters
            ),
            "list_nearby",
        )
        if outcome.is_ok:
            outcome = self._decode_remote(outcome.value, "nearby query")

        self.last_outcome = outcome
        if outcome.is_ok:
            self._art = outcome.value
            visible = [r for r in self._art if r.is_visible_to(user_id, include_private)]
            logger.info("Filtered to %d of %d nearby records", len(visible), len(self._art))
            return visible

        logger.info("Falling back to local distance calculations")
        nearby = []
        for record in self._art:
            distance = record.distance_to(position.latitude, position.longitude)
            if distance <= distance_threshold_meters and record.is_visible_to(user_id, include_private):
                nearby.append(record)
        logger.debug("%d of %d local records nearby", len(nearby), len(self._art))
        return nearby

    async def load_all(self) -> List[ArtRecord]:
        """
        Startup hydration.

        Remote path: full collection replaces the in-memory list and is
        written through to the cache. Fallback: the cached snapshot is read
        back; an empty or unreadable cache yields an empty list.
        """
        outcome = await attempt_remote(self._remote.list_all, "list_all")
        if outcome.is_ok:
            outcome = self._decode_remote(outcome.value, "list_all")

        if outcome.is_ok:
            self._art = outcome.value
            write = attempt_local(lambda: self._cache.write_snapshot(self._art), "write_snapshot")
            self.last_outcome = write if write.is_local_failure else outcome
            return list(self._art)

        local = attempt_local(self._cache.read_snapshot, "read_snapshot", default=[])
        self._art = list(local.value or [])
        self.last_outcome = local if local.is_local_failure else outcome
        logger.info("Loaded %d records from local cache (fallback)", len(self._art))
        return list(self._art)

    async def clear_all(self) -> None:
        """Best-effort remote delete; local state is always cleared."""
        outcome = await attempt_remote(self._remote.delete_all, "delete_all")
        self._art = []
        local = attempt_local(self._cache.clear, "clear")
        self.last_outcome = local if local.is_local_failure else outcome
        logger.info("Cleared all records from local storage")
