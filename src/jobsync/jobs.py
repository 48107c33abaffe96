"""Base class for job implementations fired by the scheduler."""
from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, ClassVar, Mapping, Optional

from jobsync.models import JobParameter

if TYPE_CHECKING:
    from jobsync.parameters import ParameterStore

logger = logging.getLogger("jobsync.jobs")


class ScheduledJob:
    """A named unit of schedulable work.

    Subclasses set ``name`` and implement :meth:`run`. The parameter store is
    bound before the job is handed to the scheduler; each firing re-reads the
    job's parameters so a job deactivated after registration stops doing work
    at its next firing.
    """

    name: ClassVar[str] = ""

    def __init__(self) -> None:
        self._store: Optional["ParameterStore"] = None

    def bind(self, store: "ParameterStore") -> "ScheduledJob":
        self._store = store
        return self

    @property
    def parameters(self) -> JobParameter:
        if self._store is None:
            return JobParameter.deactivated(self.name)
        return self._store.get(self.name)

    @property
    def others(self) -> Mapping[str, Any]:
        return self.parameters.others

    def __call__(self) -> None:
        parameters = self.parameters
        if not parameters.activated:
            logger.info({"event": "jobs.execute.skipped", "job": self.name, "reason": "deactivated"})
            return
        started = time.perf_counter()
        logger.info({"event": "jobs.execute.started", "job": self.name})
        try:
            self.run(parameters)
        except Exception as exc:
            logger.exception({"event": "jobs.execute.failed", "job": self.name, "error": str(exc)})
        else:
            logger.info(
                {
                    "event": "jobs.execute.succeeded",
                    "job": self.name,
                    "elapsed_seconds": round(time.perf_counter() - started, 3),
                }
            )

    def run(self, parameters: JobParameter) -> None:
        raise NotImplementedError()
