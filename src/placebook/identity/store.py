"""
Identity Store - one stable user id per device

The device remembers a single token:
- Created on first use as user_{unixMillis}_{random base36}
- Persisted under one key, never rotated or expired
- Used as creatorId on every record and for audience filtering
"""

import logging
import time
from typing import Optional

from ..errors import LocalStorageError
from ..models import random_base36
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)

USER_ID_KEY = "placebook_user_id"


def generate_user_id() -> str:
    return f"user_{int(time.time() * 1000)}_{random_base36()}"


class IdentityProvider:
    """Key-value backed device identity."""

    def __init__(self, store: KeyValueStore, key: str = USER_ID_KEY):
        self._store = store
        self._key = key
        self._user_id: Optional[str] = None

    def get_or_create_user_id(self) -> str:
        """
        Return the persisted user id, creating it on first call.

        If storage cannot be read or written the id generated for this
        session is kept in memory, so repeated calls on the same provider
        still agree with each other.
        """
        if self._user_id is not None:
            return self._user_id

        try:
            stored = self._store.get(self._key)
        except LocalStorageError as e:
            logger.warning("Could not read user id, generating a session id: %s", e)
            stored = None

        if stored:
            self._user_id = stored
            return stored

        user_id = generate_user_id()
        try:
            self._store.set(self._key, user_id)
            logger.info("Created new user ID: %s", user_id)
        except LocalStorageError as e:
            logger.error("Could not persist new user id %s: %s", user_id, e)
        self._user_id = user_id
        return user_id
