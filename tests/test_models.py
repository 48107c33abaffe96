from __future__ import annotations

import dataclasses
from decimal import Decimal

import pytest

from jobsync.errors import ConfigurationInvalid
from jobsync.models import JobIdentity, JobParameter, TriggerDescriptor, TriggerKind
from jobsync.schemas import JobParameterRecord


def test_parameter_is_immutable() -> None:
    parameter = JobParameter(name="job", activated=True, others={"a": 1})

    with pytest.raises(dataclasses.FrozenInstanceError):
        parameter.activated = False  # type: ignore[misc]
    with pytest.raises(TypeError):
        parameter.others["a"] = 2  # type: ignore[index]


def test_others_is_copied_on_construction() -> None:
    payload = {"region": "eu"}
    parameter = JobParameter(name="job", others=payload)
    payload["region"] = "us"

    assert parameter.others["region"] == "eu"


def test_deactivated_sentinel() -> None:
    sentinel = JobParameter.deactivated("job")

    assert sentinel.activated is False
    assert not sentinel.is_schedulable
    assert sentinel.schedule_error() is not None


@pytest.mark.parametrize(
    "cron, fixed, schedulable",
    [
        ("0 0 * * * ?", None, True),
        ("", Decimal("10"), True),
        ("  ", Decimal("0"), False),
        (None, Decimal("-3"), False),
        (None, None, False),
    ],
)
def test_schedulable_requires_cron_or_positive_interval(cron, fixed, schedulable) -> None:
    parameter = JobParameter(name="job", activated=True, cron_expression=cron, fixed_interval=fixed)

    assert parameter.is_schedulable is schedulable


def test_activated_flag_gates_schedulable() -> None:
    assert not JobParameter(name="job", activated=False, cron_expression="0 0 * * * ?").is_schedulable


def test_trigger_prefers_cron() -> None:
    parameter = JobParameter(
        name="job", activated=True, cron_expression=" 0 0 * * * ? ", fixed_interval=Decimal("30")
    )

    trigger = TriggerDescriptor.for_parameters(parameter, "triggers")

    assert trigger.kind is TriggerKind.CRON
    assert trigger.cron_expression == "0 0 * * * ?"
    assert trigger.key == "triggers.job"
    assert trigger.describe() == "cron[0 0 * * * ?]"


def test_trigger_interval_units() -> None:
    parameter = JobParameter(name="job", activated=True, fixed_interval=Decimal("1.5"))

    assert TriggerDescriptor.for_parameters(parameter, "g").interval_seconds == 1.5
    assert TriggerDescriptor.for_parameters(parameter, "g", unit="minutes").interval_seconds == 90.0


def test_trigger_without_schedule_is_configuration_invalid() -> None:
    parameter = JobParameter(name="job", activated=True)

    with pytest.raises(ConfigurationInvalid) as excinfo:
        TriggerDescriptor.for_parameters(parameter, "g")
    assert excinfo.value.name == "job"


def test_identity_equality_ignores_factory() -> None:
    first = JobIdentity(name="job", job_class="pkg.Job", factory=lambda: None)
    second = JobIdentity(name="job", job_class="pkg.Job", factory=lambda: None)

    assert first == second
    assert len({first, second}) == 1


def test_record_defaults_and_null_flags() -> None:
    record = JobParameterRecord.model_validate(
        {"name": "job", "activated": None, "fire_once_on_startup": None, "others": ""}
    )

    assert record.activated is False
    assert record.fire_once_on_startup is False
    assert record.others == {}
    assert record.cron is None
    assert record.fixed_time is None
