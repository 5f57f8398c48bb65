"""
Remote store client - talks to the shared art backend over HTTP.

Thin contract consumed by the art repository:
- create(record)          POST   /flowers
- list_all()              GET    /flowers
- list_nearby(lat, lng, d) GET   /flowers/nearby
- delete_all()            DELETE /flowers

Every call returns decoded JSON or raises a RemoteStoreError subclass.
There is no retry here: one failed attempt is reported immediately and the
caller decides what to fall back to.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from .errors import (
    MalformedResponseError,
    RemoteRejectedError,
    RemoteStoreError,
    RemoteUnavailableError,
)
from .models import ArtRecord

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3000/api"


class RemoteStoreClient:
    """
    aiohttp client for the art backend.

    Reuses a single ClientSession (created lazily on first request).
    Call close() or use ``async with`` to release it.
    """

    def __init__(self, api_url: str = DEFAULT_API_URL, timeout: float = 10.0):
        """
        Args:
            api_url: Base URL including the /api prefix (e.g. "http://localhost:3000/api")
            timeout: Total per-request timeout in seconds
        """
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._http_session = None

    @property
    def api_url(self) -> str:
        return self._api_url

    async def _get_session(self):
        """Get or create reusable HTTP session."""
        if self._http_session is None or self._http_session.closed:
            import aiohttp
            connector = aiohttp.TCPConnector(
                limit=5,
                limit_per_host=3,
                ttl_dns_cache=300,
                keepalive_timeout=30,
            )
            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                connector=connector,
            )
        return self._http_session

    async def close(self):
        """Close the HTTP session."""
        if self._http_session and not self._http_session.closed:
            await self._http_session.close()
        self._http_session = None

    async def __aenter__(self) -> "RemoteStoreClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Issue one request and decode the JSON body.

        Raises:
            RemoteUnavailableError: transport error or timeout
            RemoteRejectedError: non-2xx status
            MalformedResponseError: body is not UTF-8 text or not JSON
        """
        import aiohttp

        url = f"{self._api_url}{path}"
        try:
            session = await self._get_session()
            async with session.request(method, url, **kwargs) as response:
                try:
                    text = await response.text()
                except UnicodeDecodeError as e:
                    if not 200 <= response.status < 300:
                        raise RemoteRejectedError(response.status) from e
                    raise MalformedResponseError(f"{method} {path}: undecodable body: {e}") from e
                if not 200 <= response.status < 300:
                    raise RemoteRejectedError(response.status, text)
                try:
                    return json.loads(text)
                except json.JSONDecodeError as e:
                    raise MalformedResponseError(f"{method} {path}: undecodable body: {e}") from e
        except RemoteStoreError:
            raise
        except asyncio.TimeoutError as e:
            raise RemoteUnavailableError(f"{method} {path}: timed out after {self._timeout}s") from e
        except aiohttp.ClientError as e:
            raise RemoteUnavailableError(f"{method} {path}: {e}") from e
        except OSError as e:
            raise RemoteUnavailableError(f"{method} {path}: {e}") from e

    @staticmethod
    def _expect_list(payload: Any, what: str) -> List[Dict[str, Any]]:
        if not isinstance(payload, list):
            raise MalformedResponseError(f"{what} returned {type(payload).__name__}, expected a list")
        return payload

    async def create(self, record: ArtRecord) -> Dict[str, Any]:
        """POST a record; returns the stored record as the server sees it."""
        payload = await self._request("POST", "/flowers", json=record.to_dict())
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"create returned {type(payload).__name__}, expected an object")
        logger.info(
            "Saved %s to server at lat: %s, lng: %s",
            record.art_type.value, payload.get("latitude"), payload.get("longitude"),
        )
        return payload

    async def list_all(self) -> List[Dict[str, Any]]:
        payload = self._expect_list(await self._request("GET", "/flowers"), "list_all")
        logger.info("Loaded %d records from server", len(payload))
        return payload

    async def list_nearby(self, lat: float, lng: float, distance_meters: float) -> List[Dict[str, Any]]:
        """Records within distance_meters of (lat, lng); filtering is done server-side."""
        params = {"lat": str(lat), "lng": str(lng), "distance": str(distance_meters)}
        payload = self._expect_list(
            await self._request("GET", "/flowers/nearby", params=params), "list_nearby"
        )
        logger.info("Loaded %d nearby records from server", len(payload))
        return payload

    async def delete_all(self) -> Optional[Dict[str, Any]]:
        payload = await self._request("DELETE", "/flowers")
        logger.info("Cleared all records from server")
        return payload
