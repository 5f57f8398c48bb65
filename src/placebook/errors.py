"""
Failure handling - typed errors and explicit outcomes for the dual-path policy.

Provides:
- Exception types for each failure mode (remote unavailable, remote rejected,
  malformed response, local storage)
- Failure classification (remote vs local)
- Outcome result type so every fallback decision is an explicit branch
  rather than a swallowed exception
"""

import logging
import sqlite3
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailureKind(Enum):
    """Classification of failures seen by the art repository."""
    REMOTE_UNAVAILABLE = "remote_unavailable"  # Transport error, timeout, bad body
    REMOTE_REJECTED = "remote_rejected"        # Non-2xx HTTP status
    LOCAL_STORAGE = "local_storage"            # Quota, serialization, disk


class PlacebookError(Exception):
    """Base class for all placebook errors."""
    pass


class InvalidArtRecordError(PlacebookError, ValueError):
    """Record or position failed validation (missing/non-finite coordinates etc.)."""
    pass


class RemoteStoreError(PlacebookError):
    """Any failure talking to the backend. The repository only checks for this."""
    kind: FailureKind = FailureKind.REMOTE_UNAVAILABLE


class RemoteUnavailableError(RemoteStoreError):
    """Network error, refused connection or timeout."""
    kind = FailureKind.REMOTE_UNAVAILABLE


class RemoteRejectedError(RemoteStoreError):
    """Backend answered with a non-2xx status."""
    kind = FailureKind.REMOTE_REJECTED

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        detail = f": {body[:200]}" if body else ""
        super().__init__(f"HTTP {status}{detail}")


class MalformedResponseError(RemoteStoreError):
    """Backend answered 2xx but the body could not be decoded or had the wrong shape."""
    kind = FailureKind.REMOTE_UNAVAILABLE


class LocalStorageError(PlacebookError):
    """Durable local storage could not be read or written."""
    kind = FailureKind.LOCAL_STORAGE


def classify_error(error: Exception) -> FailureKind:
    """
    Classify an exception into a failure kind.

    Unknown exceptions coming out of a remote call are treated as the
    backend being unavailable.
    """
    kind = getattr(error, "kind", None)
    if isinstance(kind, FailureKind):
        return kind
    if isinstance(error, (ConnectionError, TimeoutError)):
        return FailureKind.REMOTE_UNAVAILABLE
    if isinstance(error, (OSError, sqlite3.Error, TypeError)):
        # file/sqlite/serialization errors that were not wrapped yet
        return FailureKind.LOCAL_STORAGE
    return FailureKind.REMOTE_UNAVAILABLE


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of one attempt: Ok(value) | RemoteFailed(reason) | LocalFailed(reason).

    Build with Outcome.ok(), Outcome.remote_failed() or Outcome.local_failed().
    """
    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def remote_failed(cls, reason: str, kind: FailureKind = FailureKind.REMOTE_UNAVAILABLE) -> "Outcome[T]":
        return cls(failure=kind, reason=reason)

    @classmethod
    def local_failed(cls, reason: str) -> "Outcome[T]":
        return cls(failure=FailureKind.LOCAL_STORAGE, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.failure is None

    @property
    def is_remote_failure(self) -> bool:
        return self.failure in (FailureKind.REMOTE_UNAVAILABLE, FailureKind.REMOTE_REJECTED)

    @property
    def is_local_failure(self) -> bool:
        return self.failure is FailureKind.LOCAL_STORAGE

    def to_dict(self) -> dict:
        return {
            "ok": self.is_ok,
            "failure": self.failure.value if self.failure else None,
            "reason": self.reason,
        }


async def attempt_remote(func: Callable[[], Awaitable[T]], label: str) -> Outcome[T]:
    """
    Await a remote call and convert any failure into an Outcome.

    Args:
        func: Zero-argument coroutine function performing the remote call
        label: Short name for log lines (e.g. "create")

    Returns:
        Outcome.ok(result) or Outcome.remote_failed(...)
    """
    try:
        return Outcome.ok(await func())
    except RemoteStoreError as e:
        logger.warning("Remote %s failed (%s): %s", label, e.kind.value, e)
        return Outcome.remote_failed(str(e), e.kind)
    except Exception as e:
        # Anything else escaping the client still means "no usable remote answer"
        logger.warning("Remote %s failed unexpectedly: %s", label, e)
        return Outcome.remote_failed(f"{type(e).__name__}: {e}")


def attempt_local(func: Callable[[], T], label: str, default: Any = None) -> Outcome[T]:
    """
    Run a local-storage call and convert failure into Outcome.local_failed.

    The default is carried as the outcome value so callers can still read
    something sensible (e.g. an empty snapshot) after a failure.
    """
    try:
        return Outcome.ok(func())
    except Exception as e:
        logger.error("Local storage %s failed: %s", label, e)
        return Outcome(value=default, failure=FailureKind.LOCAL_STORAGE, reason=str(e))
