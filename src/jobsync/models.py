from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from jobsync.errors import ConfigurationInvalid

_EMPTY: Mapping[str, Any] = MappingProxyType({})

_UNIT_SECONDS = {"seconds": 1, "minutes": 60}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class JobParameter:
    """Configuration snapshot for one job, as published into the parameter cache."""

    name: str
    activated: bool = False
    cron_expression: Optional[str] = None
    fixed_interval: Optional[Decimal] = None
    fire_once_on_startup: bool = False
    reinitialize_on_startup: bool = False
    others: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    loaded_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not isinstance(self.others, MappingProxyType):
            object.__setattr__(self, "others", MappingProxyType(dict(self.others or {})))

    @classmethod
    def deactivated(cls, name: str, loaded_at: Optional[datetime] = None) -> "JobParameter":
        """Sentinel served when the real configuration cannot be loaded."""
        return cls(name=name, activated=False, loaded_at=loaded_at or utcnow())

    @property
    def has_cron(self) -> bool:
        return bool(self.cron_expression and self.cron_expression.strip())

    @property
    def has_fixed_interval(self) -> bool:
        return self.fixed_interval is not None and self.fixed_interval > 0

    @property
    def is_schedulable(self) -> bool:
        return self.activated and (self.has_cron or self.has_fixed_interval)

    def schedule_error(self) -> Optional[str]:
        if self.has_cron or self.has_fixed_interval:
            return None
        return f"Job '{self.name}' has neither a cron expression nor a positive fixed interval"

    def age(self, now: datetime) -> float:
        return (now - self.loaded_at).total_seconds()


@dataclass(frozen=True, slots=True)
class JobIdentity:
    """A discovered job: its stable name, implementation and how to build it."""

    name: str
    job_class: str
    factory: Callable[[], Callable[..., Any]] = field(compare=False, hash=False, repr=False)


class TriggerKind(str, Enum):
    CRON = "cron"
    INTERVAL = "interval"


@dataclass(frozen=True, slots=True)
class TriggerDescriptor:
    name: str
    group: str
    kind: TriggerKind
    cron_expression: Optional[str] = None
    interval_seconds: Optional[float] = None

    @property
    def key(self) -> str:
        return f"{self.group}.{self.name}"

    @classmethod
    def for_parameters(
        cls, parameter: JobParameter, group: str, unit: str = "seconds"
    ) -> "TriggerDescriptor":
        """Derive the trigger for a job; a cron expression always wins over a fixed interval."""
        if parameter.has_cron:
            return cls(
                name=parameter.name,
                group=group,
                kind=TriggerKind.CRON,
                cron_expression=parameter.cron_expression.strip(),
            )
        if parameter.has_fixed_interval:
            seconds = float(parameter.fixed_interval * _UNIT_SECONDS[unit])
            return cls(
                name=parameter.name,
                group=group,
                kind=TriggerKind.INTERVAL,
                interval_seconds=seconds,
            )
        raise ConfigurationInvalid(parameter.name, parameter.schedule_error() or "")

    def describe(self) -> str:
        if self.kind is TriggerKind.CRON:
            return f"cron[{self.cron_expression}]"
        return f"interval[{self.interval_seconds:g}s]"


@dataclass(frozen=True, slots=True)
class JobDescriptor:
    name: str
    group: str
    job_class: str
    target: Callable[..., Any] = field(compare=False, repr=False)

    @property
    def key(self) -> str:
        return f"{self.group}.{self.name}"


class ReconcileOutcome(str, Enum):
    INITIALIZED = "initialized"
    SKIPPED_INACTIVE = "skipped-inactive"
    SKIPPED_INVALID_CONFIG = "skipped-invalid-config"
    ALREADY_EXISTS = "already-exists"
    REINITIALIZED = "reinitialized"
    TRIGGERED_IMMEDIATELY = "triggered-immediately"
    FAILED = "failed"


@dataclass(slots=True)
class JobReconcileResult:
    name: str
    job_class: str
    outcomes: list[ReconcileOutcome] = field(default_factory=list)
    config_error: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "job_class": self.job_class,
            "outcomes": [outcome.value for outcome in self.outcomes],
            "config_error": self.config_error,
            "error": self.error,
        }


@dataclass(slots=True)
class ReconcileReport:
    results: list[JobReconcileResult] = field(default_factory=list)

    def get(self, name: str) -> Optional[JobReconcileResult]:
        return next((result for result in self.results if result.name == name), None)

    def count(self, outcome: ReconcileOutcome) -> int:
        return sum(1 for result in self.results if outcome in result.outcomes)

    @property
    def failed(self) -> list[JobReconcileResult]:
        return [result for result in self.results if ReconcileOutcome.FAILED in result.outcomes]

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.results),
            "results": [result.as_dict() for result in self.results],
        }
