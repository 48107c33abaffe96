from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jobsync.models import JobParameter


class JobParameterRecord(BaseModel):
    """Per-job configuration record as delivered by a parameter source."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    name: str
    activated: bool = False
    cron: Optional[str] = None
    fixed_time: Optional[Decimal] = None
    fire_once_on_startup: bool = False
    reinitialize_on_startup: bool = False
    others: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("activated", "fire_once_on_startup", "reinitialize_on_startup", mode="before")
    @classmethod
    def null_flags_are_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("others", mode="before")
    @classmethod
    def decode_others(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, (str, bytes)):
            if not value.strip():
                return {}
            decoded = json.loads(value)
            if not isinstance(decoded, dict):
                raise ValueError("others must decode to a JSON object")
            return decoded
        return value

    def to_parameter(self, loaded_at: datetime) -> JobParameter:
        return JobParameter(
            name=self.name,
            activated=self.activated,
            cron_expression=self.cron,
            fixed_interval=self.fixed_time,
            fire_once_on_startup=self.fire_once_on_startup,
            reinitialize_on_startup=self.reinitialize_on_startup,
            others=self.others,
            loaded_at=loaded_at,
        )


class HealthResponse(BaseModel):
    ok: bool
    version: str
    service: str


class RegistrationResponse(BaseModel):
    name: str
    job_id: str
    trigger: str
    next_run_time: Optional[datetime] = None


class JobResultResponse(BaseModel):
    name: str
    job_class: str
    outcomes: List[str]
    config_error: Optional[str] = None
    error: Optional[str] = None


class ReconcileResponse(BaseModel):
    total: int
    results: List[JobResultResponse]
