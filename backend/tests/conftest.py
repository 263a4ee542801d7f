"""Pytest fixtures for the waitlist tests.

Everything runs against in-memory doubles: MemoryStorage for the local
slot, in-memory SQLite for the SQL backend, a recording fake for remote calls.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from config import WaitlistConfig
from errors import BackendUnavailable
from storage import MemoryStorage
from waitlist import LocalEntryStore


class StepClock:
    """Clock that advances by ``step`` on every call; step=0 freezes it."""

    def __init__(self, step: timedelta = timedelta(seconds=1)):
        self.now = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


class FakeRemote:
    """Records upserts; raises ``error`` instead when set."""

    def __init__(self, error: Optional[Exception] = None):
        self.calls: List[Dict[str, Any]] = []
        self.error = error

    def upsert(self, fields: Dict[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append(dict(fields))


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def local_store(storage, clock) -> LocalEntryStore:
    return LocalEntryStore(storage, clock=clock)


@pytest.fixture
def local_config(tmp_path) -> WaitlistConfig:
    return WaitlistConfig(storage_dir=tmp_path)


@pytest.fixture
def remote_config(tmp_path) -> WaitlistConfig:
    return WaitlistConfig(
        remote_url="https://abc123.supabase.co",
        remote_key="real-anon-key",
        storage_dir=tmp_path,
    )


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def failing_remote() -> FakeRemote:
    return FakeRemote(
        BackendUnavailable("Remote upsert rejected", detail="409: duplicate key value")
    )
