"""Assemble the parameter store, scheduler and reconciler from settings."""
from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.base import BaseScheduler
from sqlalchemy.engine import Engine

from jobsync import runner
from jobsync.config import Settings
from jobsync.discovery import JobClassDiscovery, PackageScanDiscovery, parse_scan_targets
from jobsync.models import ReconcileReport
from jobsync.parameters import ParameterStore
from jobsync.reconciler import Reconciler
from jobsync.scheduler import ApschedulerFacade, Registration, build_scheduler
from jobsync.sources import ParameterSource, SqlParameterSource, StaticParameterSource
from jobsync.storage import get_engine, get_session_factory, init_db

logger = logging.getLogger("jobsync.service")


def build_source(settings: Settings, engine: Optional[Engine] = None) -> ParameterSource:
    if settings.PARAMETER_SOURCE == "static":
        return StaticParameterSource(settings.JOB_PARAMS)
    engine = engine or get_engine(settings.DB_PATH)
    init_db(engine)
    return SqlParameterSource(get_session_factory(engine))


class JobSyncService:
    """Owns one scheduler, one parameter store and the reconciler bound to them."""

    def __init__(
        self,
        settings: Settings,
        discovery: Optional[JobClassDiscovery] = None,
        source: Optional[ParameterSource] = None,
        scheduler: Optional[BaseScheduler] = None,
    ) -> None:
        self.settings = settings
        self.discovery = discovery or PackageScanDiscovery()
        self.scan_targets = parse_scan_targets(settings.JOB_PACKAGES)
        self._engine: Optional[Engine] = None
        if source is None:
            source = build_source(settings, self._database() if settings.PARAMETER_SOURCE == "database" else None)
        self.store = ParameterStore(
            source,
            ttl=settings.parameter_cache_ttl,
            load_timeout=settings.PARAMETER_LOAD_TIMEOUT_SECONDS,
        )
        if scheduler is None:
            scheduler = build_scheduler(
                settings.SCHEDULER_TIMEZONE,
                engine=self._database() if settings.SCHEDULER_PERSIST else None,
                instance_name=settings.SCHEDULER_INSTANCE_NAME,
            )
        self.facade = ApschedulerFacade(
            scheduler,
            job_group=settings.JOB_GROUP,
            trigger_group=settings.TRIGGER_GROUP,
            persistent=settings.SCHEDULER_PERSIST,
        )
        self.reconciler = Reconciler(
            self.store,
            self.facade,
            job_group=settings.JOB_GROUP,
            trigger_group=settings.TRIGGER_GROUP,
            fixed_interval_unit=settings.FIXED_INTERVAL_UNIT,
            max_workers=settings.RECONCILE_WORKERS,
        )

    def _database(self) -> Engine:
        if self._engine is None:
            self._engine = get_engine(self.settings.DB_PATH)
        return self._engine

    def reconcile(self) -> ReconcileReport:
        if not self.scan_targets:
            logger.info(
                {
                    "event": "service.reconcile.no_targets",
                    "message": "JOB_PACKAGES is empty; only registry-supplied jobs are reconciled",
                }
            )
        else:
            logger.info({"event": "service.reconcile.targets", "targets": self.scan_targets})
        identities = self.discovery.discover(self.scan_targets)
        runner.install(self.store, identities)
        return self.reconciler.reconcile(identities)

    def start(self) -> ReconcileReport:
        """Reconcile against the scheduler's job store, then let jobs fire.

        The scheduler is started paused first so that registrations kept in a
        persistent job store are visible to the reconciler. A scheduler that
        fails to start is fatal.
        """
        scheduler = self.facade.scheduler
        if not scheduler.running:
            scheduler.start(paused=True)
        try:
            report = self.reconcile()
        finally:
            scheduler.resume()
        logger.info({"event": "service.started", "registrations": len(self.registrations())})
        return report

    def registrations(self) -> list[Registration]:
        return self.facade.registrations()

    def shutdown(self) -> None:
        if self.facade.scheduler.running:
            self.facade.scheduler.shutdown(wait=False)
        self.store.close()
        if self._engine is not None:
            self._engine.dispose()
        logger.info({"event": "service.stopped"})
