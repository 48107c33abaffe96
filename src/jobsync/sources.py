"""Backing sources for per-job parameter records."""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Mapping, Protocol, Union, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from jobsync.errors import ParameterNotFound
from jobsync.schemas import JobParameterRecord
from jobsync.storage import JobParameterRow, get_session

logger = logging.getLogger("jobsync.sources")


@runtime_checkable
class ParameterSource(Protocol):
    def load(self, name: str) -> JobParameterRecord:
        """Return the record for ``name``; raise ParameterNotFound or any error on failure."""
        ...


class SqlParameterSource:
    """Reads records from the ``job_parameter`` table."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def load(self, name: str) -> JobParameterRecord:
        with get_session(self._session_factory) as session:
            row = session.execute(
                select(JobParameterRow).where(JobParameterRow.name == name)
            ).scalar_one_or_none()
            if row is None:
                raise ParameterNotFound(name)
            return JobParameterRecord.model_validate(row)

    def save(self, record: Union[JobParameterRecord, Mapping[str, Any]]) -> None:
        """Insert or replace a record; used by hosts to seed configuration."""
        if not isinstance(record, JobParameterRecord):
            record = JobParameterRecord.model_validate(record)
        payload = record.model_dump()
        others = payload.pop("others")
        with get_session(self._session_factory) as session:
            row = session.get(JobParameterRow, record.name)
            if row is None:
                row = JobParameterRow(name=record.name)
                session.add(row)
            for key, value in payload.items():
                setattr(row, key, value)
            row.others = json.dumps(others) if others else None
        logger.debug({"event": "sources.sql.saved", "job": record.name})


class StaticParameterSource:
    """Serves records held in memory, e.g. from the JOB_PARAMS setting."""

    def __init__(self, records: Iterable[Union[JobParameterRecord, Mapping[str, Any]]] = ()) -> None:
        self._records: dict[str, JobParameterRecord] = {}
        for record in records:
            parsed = record if isinstance(record, JobParameterRecord) else JobParameterRecord.model_validate(record)
            self._records[parsed.name] = parsed

    def load(self, name: str) -> JobParameterRecord:
        try:
            return self._records[name]
        except KeyError:
            raise ParameterNotFound(name) from None
