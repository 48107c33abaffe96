"""Time-boxed cache of per-job parameter snapshots."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Optional

from jobsync.errors import ParameterLoadFailure
from jobsync.models import JobParameter, utcnow
from jobsync.sources import ParameterSource

logger = logging.getLogger("jobsync.parameters")

DEFAULT_TTL = timedelta(minutes=30)


class ParameterStore:
    """Serve job parameters from a cache, reloading from the source on miss or expiry.

    ``get`` never raises for a load failure: a missing record, a timeout, a
    malformed payload or any other error from the source publishes a
    deactivated snapshot for the job instead.

    Loads are not serialised per key. Callers racing on the same expired
    entry may each reload it and the last publish wins; a published snapshot
    is immutable, so readers never observe a partial one.
    """

    def __init__(
        self,
        source: ParameterSource,
        ttl: timedelta = DEFAULT_TTL,
        load_timeout: Optional[float] = 10.0,
        clock: Callable[[], datetime] = utcnow,
        max_workers: int = 4,
    ) -> None:
        self._source = source
        self._ttl = ttl
        self._load_timeout = load_timeout
        self._clock = clock
        self._lock = Lock()
        self._cache: dict[str, JobParameter] = {}
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="jobsync-params")

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, name: str) -> JobParameter:
        with self._lock:
            cached = self._cache.get(name)
        now = self._clock()
        if cached is None:
            logger.info({"event": "parameters.cache.miss", "job": name})
            return self._reload(name)
        if self._is_expired(cached, now):
            logger.info({"event": "parameters.cache.expired", "job": name, "age_seconds": cached.age(now)})
            return self._reload(name)
        logger.debug({"event": "parameters.cache.hit", "job": name})
        return cached

    def refresh(self, name: str) -> JobParameter:
        """Reload ``name`` regardless of the cached snapshot's age."""
        return self._reload(name)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _is_expired(self, parameter: JobParameter, now: datetime) -> bool:
        return now - parameter.loaded_at > self._ttl

    def _reload(self, name: str) -> JobParameter:
        try:
            record = self._load(name)
            parameter = record.to_parameter(loaded_at=self._clock())
            if parameter.name != name:
                raise ParameterLoadFailure(name, ValueError(f"source returned record for '{parameter.name}'"))
        except Exception as exc:
            logger.error(
                {"event": "parameters.load.failed", "job": name, "error": str(exc)},
                exc_info=not isinstance(exc, ParameterLoadFailure),
            )
            parameter = JobParameter.deactivated(name, loaded_at=self._clock())
        else:
            logger.info({"event": "parameters.load.succeeded", "job": name})
        self._publish(parameter)
        return parameter

    def _load(self, name: str):
        if self._load_timeout is None:
            return self._source.load(name)
        future = self._executor.submit(self._source.load, name)
        try:
            return future.result(timeout=self._load_timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning({"event": "parameters.load.timeout", "job": name, "timeout_seconds": self._load_timeout})
            raise ParameterLoadFailure(name, TimeoutError(f"load exceeded {self._load_timeout}s")) from None

    def _publish(self, parameter: JobParameter) -> None:
        with self._lock:
            self._cache[parameter.name] = parameter
