"""Narrow facade over the scheduler engine, with an APScheduler implementation."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol
from uuid import uuid4

from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.engine import Engine

from jobsync.errors import SchedulerOperationFailure
from jobsync.models import JobDescriptor, TriggerDescriptor, TriggerKind
from jobsync.runner import run_job

logger = logging.getLogger("jobsync.scheduler")

# Quartz numbers days of the week 1=Sunday .. 7=Saturday
_QUARTZ_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_ORDINALS = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 5: "5th"}


class SchedulerFacade(Protocol):
    def exists(self, name: str) -> bool:
        ...

    def create(self, job: JobDescriptor, trigger: TriggerDescriptor) -> None:
        ...

    def delete(self, name: str) -> None:
        ...

    def trigger_now(self, name: str) -> None:
        ...


@dataclass(slots=True)
class Registration:
    name: str
    job_id: str
    trigger: str
    next_run_time: Optional[datetime] = None


def _quartz_day_number(token: str) -> int:
    if token.isdigit():
        number = int(token)
        if 1 <= number <= 7:
            return number
    elif token[:3].lower() in _QUARTZ_DAY_NAMES:
        return _QUARTZ_DAY_NAMES.index(token[:3].lower()) + 1
    raise ValueError(f"Invalid day of week '{token}'")


def _quartz_day_name(token: str) -> str:
    return _QUARTZ_DAY_NAMES[_quartz_day_number(token) - 1]


def _quartz_day_of_week(field: str) -> tuple[Optional[str], str]:
    """Translate a Quartz day-of-week field.

    Returns ``(day, day_of_week)``: ``day`` is set when the field names a
    position within the month (``6#3``, ``6L``), which APScheduler expresses
    in its day field.
    """
    if "#" in field:
        weekday, _, nth = field.partition("#")
        if "," in field or not nth.isdigit() or int(nth) not in _ORDINALS:
            raise ValueError(f"Invalid day of week '{field}'")
        return f"{_ORDINALS[int(nth)]} {_quartz_day_name(weekday)}", "*"
    if field.upper() == "L":
        return None, "sat"
    if field.upper().endswith("L"):
        return f"last {_quartz_day_name(field[:-1])}", "*"

    tokens = []
    for token in field.split(","):
        if "/" in token:
            base, _, step = token.partition("/")
            if base in ("", "*"):
                first, last = 1, 7
            elif "-" in base:
                start, _, end = base.partition("-")
                first, last = _quartz_day_number(start), _quartz_day_number(end)
            else:
                first, last = _quartz_day_number(base), 7
            if not step.isdigit() or int(step) < 1 or first > last:
                raise ValueError(f"Invalid day of week '{token}'")
            tokens.extend(_QUARTZ_DAY_NAMES[number - 1] for number in range(first, last + 1, int(step)))
        elif token == "*":
            tokens.append(token)
        elif "-" in token:
            start, _, end = token.partition("-")
            tokens.append(f"{_quartz_day_name(start)}-{_quartz_day_name(end)}")
        else:
            tokens.append(_quartz_day_name(token))
    return None, ",".join(tokens)


def cron_trigger(expression: str, timezone: Any = None) -> CronTrigger:
    """Build a CronTrigger from a 5-field crontab or a 6/7-field expression with seconds.

    In the seconds form ``?`` means "any", ``L`` in the day field means the last
    day of the month and days of the week count 1=Sunday .. 7=Saturday,
    including ``N#k`` (k-th weekday N of the month) and ``NL`` (last one).
    """
    fields = expression.split()
    if len(fields) == 5:
        return CronTrigger.from_crontab(expression, timezone=timezone)
    if len(fields) not in (6, 7):
        raise ValueError(f"Unsupported cron expression '{expression}': expected 5, 6 or 7 fields")
    fields = ["*" if value == "?" else value for value in fields]
    second, minute, hour, day, month, day_of_week = fields[:6]
    year = fields[6] if len(fields) == 7 else None
    if day.upper() == "L":
        day = "last"
    weekday_position, day_of_week = _quartz_day_of_week(day_of_week)
    if weekday_position is not None:
        if day != "*":
            raise ValueError(f"Unsupported cron expression '{expression}': day and day of week both set")
        day = weekday_position
    return CronTrigger(
        second=second,
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=day_of_week,
        year=year,
        timezone=timezone,
    )


def jobstore_table(instance_name: str) -> str:
    return re.sub(r"\W+", "_", instance_name).strip("_").lower() + "_jobs"


def build_scheduler(
    timezone: str = "UTC",
    engine: Optional[Engine] = None,
    instance_name: str = "jobsync",
) -> BackgroundScheduler:
    """Return a BackgroundScheduler; with ``engine`` its jobs are stored in that database."""
    options: dict[str, Any] = {
        "timezone": timezone,
        "job_defaults": {"coalesce": True, "max_instances": 1},
    }
    if engine is not None:
        options["jobstores"] = {
            "default": SQLAlchemyJobStore(engine=engine, tablename=jobstore_table(instance_name))
        }
        logger.info({"event": "scheduler.jobstore.persistent", "table": jobstore_table(instance_name)})
    return BackgroundScheduler(**options)


class ApschedulerFacade:
    """SchedulerFacade backed by an APScheduler 3.x scheduler.

    A job registered under ``(name, job_group)`` gets the APScheduler id
    ``"{job_group}.{name}"``; the trigger key ``"{trigger_group}.{name}"`` is
    kept as the APScheduler job name.

    With ``persistent`` set the scheduler's job store outlives the process, so
    jobs are registered as :func:`jobsync.runner.run_job` with the job class
    and name as arguments rather than as the job instance itself.
    """

    def __init__(
        self,
        scheduler: BaseScheduler,
        job_group: str = "metrics_jobs_group",
        trigger_group: str = "metrics_triggers_group",
        persistent: bool = False,
    ) -> None:
        self._scheduler = scheduler
        self._job_group = job_group
        self._trigger_group = trigger_group
        self._persistent = persistent

    @property
    def scheduler(self) -> BaseScheduler:
        return self._scheduler

    def job_id(self, name: str) -> str:
        return f"{self._job_group}.{name}"

    def exists(self, name: str) -> bool:
        try:
            return self._scheduler.get_job(self.job_id(name)) is not None
        except Exception as exc:
            raise SchedulerOperationFailure("exists", name, exc) from exc

    def create(self, job: JobDescriptor, trigger: TriggerDescriptor) -> None:
        if self._persistent:
            func, args = run_job, [job.job_class, job.name]
        else:
            func, args = job.target, None
        try:
            self._scheduler.add_job(
                func,
                trigger=self._build_trigger(trigger),
                args=args,
                id=job.key,
                name=trigger.key,
                replace_existing=False,
            )
        except Exception as exc:
            raise SchedulerOperationFailure("create", job.name, exc) from exc
        logger.debug({"event": "scheduler.job.created", "job": job.name, "trigger": trigger.describe()})

    def delete(self, name: str) -> None:
        try:
            self._scheduler.remove_job(self.job_id(name))
        except Exception as exc:
            raise SchedulerOperationFailure("delete", name, exc) from exc
        logger.debug({"event": "scheduler.job.deleted", "job": name})

    def trigger_now(self, name: str) -> None:
        """Run the registered job once, now, leaving its recurring trigger untouched."""
        try:
            registered = self._scheduler.get_job(self.job_id(name))
            if registered is None:
                raise LookupError(f"no job registered with id '{self.job_id(name)}'")
            self._scheduler.add_job(
                registered.func,
                trigger=DateTrigger(timezone=self._scheduler.timezone),
                args=registered.args,
                kwargs=registered.kwargs,
                id=f"{self._trigger_group}.{name}.fire-{uuid4().hex[:8]}",
                name=f"{self._trigger_group}.{name}",
                misfire_grace_time=None,
            )
        except Exception as exc:
            raise SchedulerOperationFailure("trigger_now", name, exc) from exc
        logger.debug({"event": "scheduler.job.triggered", "job": name})

    def registrations(self) -> list[Registration]:
        """List the recurring registrations in the job group; one-off fires are left out."""
        prefix = f"{self._job_group}."
        result = []
        for job in self._scheduler.get_jobs():
            if not job.id.startswith(prefix) or isinstance(job.trigger, DateTrigger):
                continue
            result.append(
                Registration(
                    name=job.id[len(prefix):],
                    job_id=job.id,
                    trigger=str(job.trigger),
                    next_run_time=getattr(job, "next_run_time", None),
                )
            )
        return result

    def _build_trigger(self, trigger: TriggerDescriptor) -> BaseTrigger:
        timezone = self._scheduler.timezone
        if trigger.kind is TriggerKind.CRON:
            return cron_trigger(trigger.cron_expression or "", timezone=timezone)
        return IntervalTrigger(seconds=trigger.interval_seconds, timezone=timezone)
