from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from jobsync.errors import ParameterNotFound, SchedulerOperationFailure
from jobsync.models import JobDescriptor, JobIdentity, TriggerDescriptor
from jobsync.parameters import ParameterStore
from jobsync.reconciler import Reconciler
from jobsync.schemas import JobParameterRecord


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class CountingSource:
    """In-memory parameter source that counts loads and can fail or stall per job."""

    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.records: Dict[str, Dict[str, Any]] = dict(records or {})
        self.errors: Dict[str, Exception] = {}
        self.delays: Dict[str, float] = {}
        self.loads: List[str] = []

    def load(self, name: str) -> JobParameterRecord:
        self.loads.append(name)
        if name in self.delays:
            time.sleep(self.delays[name])
        if name in self.errors:
            raise self.errors[name]
        if name not in self.records:
            raise ParameterNotFound(name)
        return JobParameterRecord.model_validate({"name": name, **self.records[name]})

    def load_count(self, name: str) -> int:
        return self.loads.count(name)


class FakeScheduler:
    """SchedulerFacade double that records every call."""

    def __init__(self, existing: Tuple[str, ...] = ()) -> None:
        self.registered: Dict[str, Tuple[Optional[JobDescriptor], Optional[TriggerDescriptor]]] = {
            name: (None, None) for name in existing
        }
        self.calls: List[Tuple[str, str]] = []
        self.fail_on: Dict[Tuple[str, str], Exception] = {}

    def _record(self, operation: str, name: str) -> None:
        self.calls.append((operation, name))
        if (operation, name) in self.fail_on:
            raise SchedulerOperationFailure(operation, name, self.fail_on[(operation, name)])

    def exists(self, name: str) -> bool:
        self._record("exists", name)
        return name in self.registered

    def create(self, job: JobDescriptor, trigger: TriggerDescriptor) -> None:
        self._record("create", job.name)
        self.registered[job.name] = (job, trigger)

    def delete(self, name: str) -> None:
        self._record("delete", name)
        self.registered.pop(name, None)

    def trigger_now(self, name: str) -> None:
        self._record("trigger_now", name)

    def count(self, operation: str, name: Optional[str] = None) -> int:
        return sum(1 for op, job in self.calls if op == operation and (name is None or job == name))

    def trigger_for(self, name: str) -> Optional[TriggerDescriptor]:
        return self.registered[name][1]


class NoopJob:
    def __init__(self) -> None:
        self.store = None
        self.calls = 0

    def bind(self, store: ParameterStore) -> "NoopJob":
        self.store = store
        return self

    def __call__(self) -> None:
        self.calls += 1


def job_identity(name: str) -> JobIdentity:
    return JobIdentity(name=name, job_class="tests.conftest.NoopJob", factory=NoopJob)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> CountingSource:
    return CountingSource()


@pytest.fixture
def store(source: CountingSource, clock: FakeClock):
    parameter_store = ParameterStore(source, ttl=timedelta(minutes=30), load_timeout=2.0, clock=clock)
    yield parameter_store
    parameter_store.close()


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def reconciler(store: ParameterStore, fake_scheduler: FakeScheduler) -> Reconciler:
    return Reconciler(store, fake_scheduler)
