"""
Tests for errors module - failure classification and Outcome plumbing.
"""

import sqlite3

import pytest

from placebook.errors import (
    FailureKind,
    InvalidArtRecordError,
    LocalStorageError,
    MalformedResponseError,
    Outcome,
    RemoteRejectedError,
    RemoteUnavailableError,
    attempt_local,
    attempt_remote,
    classify_error,
)


class TestClassifyError:

    @pytest.mark.parametrize("error,expected", [
        (RemoteUnavailableError("refused"), FailureKind.REMOTE_UNAVAILABLE),
        (RemoteRejectedError(500, "oops"), FailureKind.REMOTE_REJECTED),
        (MalformedResponseError("not json"), FailureKind.REMOTE_UNAVAILABLE),
        (LocalStorageError("quota"), FailureKind.LOCAL_STORAGE),
        (ConnectionRefusedError(), FailureKind.REMOTE_UNAVAILABLE),
        (TimeoutError(), FailureKind.REMOTE_UNAVAILABLE),
        (PermissionError("read-only"), FailureKind.LOCAL_STORAGE),
        (sqlite3.OperationalError("locked"), FailureKind.LOCAL_STORAGE),
        (RuntimeError("???"), FailureKind.REMOTE_UNAVAILABLE),
    ])
    def test_classification(self, error, expected):
        assert classify_error(error) is expected


class TestExceptions:

    def test_invalid_record_is_value_error(self):
        assert issubclass(InvalidArtRecordError, ValueError)

    def test_rejected_message_truncates_body(self):
        e = RemoteRejectedError(502, "x" * 500)
        assert e.status == 502
        assert str(e) == "HTTP 502: " + "x" * 200

    def test_rejected_without_body(self):
        assert str(RemoteRejectedError(404)) == "HTTP 404"


class TestOutcome:

    def test_ok(self):
        outcome = Outcome.ok([1, 2])
        assert outcome.is_ok
        assert not outcome.is_remote_failure
        assert outcome.value == [1, 2]

    def test_remote_failed(self):
        outcome = Outcome.remote_failed("HTTP 500", FailureKind.REMOTE_REJECTED)
        assert outcome.is_remote_failure
        assert not outcome.is_local_failure
        assert outcome.to_dict() == {"ok": False, "failure": "remote_rejected", "reason": "HTTP 500"}

    def test_local_failed(self):
        outcome = Outcome.local_failed("disk full")
        assert outcome.is_local_failure
        assert not outcome.is_ok


class TestAttempt:

    @pytest.mark.asyncio
    async def test_remote_success(self):
        async def call():
            return {"id": "flower_1"}

        outcome = await attempt_remote(call, "create")
        assert outcome.is_ok
        assert outcome.value == {"id": "flower_1"}

    @pytest.mark.asyncio
    async def test_remote_store_error_keeps_kind(self):
        async def call():
            raise RemoteRejectedError(503, "maintenance")

        outcome = await attempt_remote(call, "list_all")
        assert outcome.failure is FailureKind.REMOTE_REJECTED
        assert "503" in outcome.reason

    @pytest.mark.asyncio
    async def test_unexpected_error_is_remote_failure(self):
        async def call():
            raise KeyError("id")

        outcome = await attempt_remote(call, "create")
        assert outcome.is_remote_failure
        assert outcome.reason.startswith("KeyError")

    def test_local_success(self):
        assert attempt_local(lambda: 42, "read").value == 42

    def test_local_failure_carries_default(self):
        def boom():
            raise LocalStorageError("corrupt")

        outcome = attempt_local(boom, "read_snapshot", default=[])
        assert outcome.is_local_failure
        assert outcome.value == []
        assert outcome.reason == "corrupt"
