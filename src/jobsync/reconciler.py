"""Converge scheduler registrations to the configured state of each discovered job."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable

from jobsync.errors import ConfigurationInvalid
from jobsync.models import (
    JobDescriptor,
    JobIdentity,
    JobReconcileResult,
    ReconcileOutcome,
    ReconcileReport,
    TriggerDescriptor,
)
from jobsync.parameters import ParameterStore
from jobsync.scheduler import SchedulerFacade

logger = logging.getLogger("jobsync.reconciler")


class Reconciler:
    """Apply the minimal create/delete/fire operations for each discovered job.

    Per job, in order:

    1. a deactivated job has any registration deleted and is not processed further;
    2. ``reinitialize_on_startup`` deletes an existing registration;
    3. a missing registration is created from the cron expression or, when that
       is blank, the fixed interval; with neither the job is skipped;
    4. an existing registration is otherwise left untouched;
    5. ``fire_once_on_startup`` then fires the job once.

    A failure while processing one job is logged and recorded on its result
    and never stops the pass.
    """

    def __init__(
        self,
        store: ParameterStore,
        scheduler: SchedulerFacade,
        job_group: str = "metrics_jobs_group",
        trigger_group: str = "metrics_triggers_group",
        fixed_interval_unit: str = "seconds",
        max_workers: int = 1,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._job_group = job_group
        self._trigger_group = trigger_group
        self._fixed_interval_unit = fixed_interval_unit
        self._max_workers = max(1, max_workers)

    def reconcile(self, identities: Iterable[JobIdentity]) -> ReconcileReport:
        ordered = sorted(identities, key=lambda identity: identity.name)
        logger.info({"event": "jobs.reconcile.started", "jobs": len(ordered)})
        if self._max_workers == 1 or len(ordered) <= 1:
            results = [self.reconcile_job(identity) for identity in ordered]
        else:
            with ThreadPoolExecutor(
                max_workers=self._max_workers, thread_name_prefix="jobsync-reconcile"
            ) as executor:
                results = list(executor.map(self.reconcile_job, ordered))
        report = ReconcileReport(results=results)
        logger.info(
            {
                "event": "jobs.reconcile.completed",
                "jobs": len(results),
                "failed": len(report.failed),
                "outcomes": {outcome.value: report.count(outcome) for outcome in ReconcileOutcome},
            }
        )
        return report

    def reconcile_job(self, identity: JobIdentity) -> JobReconcileResult:
        result = JobReconcileResult(name=identity.name, job_class=identity.job_class)
        try:
            self._apply(identity, result)
        except Exception as exc:
            result.outcomes.append(ReconcileOutcome.FAILED)
            result.error = str(exc)
            logger.error(
                {
                    "event": "jobs.reconcile.failed",
                    "job": identity.name,
                    "job_class": identity.job_class,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return result
        logger.info(
            {
                "event": "jobs.reconciled",
                "job": identity.name,
                "job_class": identity.job_class,
                "outcomes": [outcome.value for outcome in result.outcomes],
            }
        )
        return result

    def _apply(self, identity: JobIdentity, result: JobReconcileResult) -> None:
        name = identity.name
        parameter = self._store.get(name)
        result.config_error = parameter.schedule_error()

        if not parameter.activated:
            if self._scheduler.exists(name):
                self._scheduler.delete(name)
                logger.warning(
                    {
                        "event": "jobs.reconcile.inactive",
                        "job": name,
                        "job_class": identity.job_class,
                        "registration_deleted": True,
                        "message": "job is not active, existing registration cleared",
                    }
                )
            else:
                logger.info(
                    {
                        "event": "jobs.reconcile.inactive",
                        "job": name,
                        "job_class": identity.job_class,
                        "registration_deleted": False,
                        "message": "job is not active",
                    }
                )
            result.outcomes.append(ReconcileOutcome.SKIPPED_INACTIVE)
            return

        exists = self._scheduler.exists(name)
        reinitialized = False
        if parameter.reinitialize_on_startup and exists:
            self._scheduler.delete(name)
            exists = False
            reinitialized = True

        if exists:
            result.outcomes.append(ReconcileOutcome.ALREADY_EXISTS)
        else:
            try:
                trigger = TriggerDescriptor.for_parameters(
                    parameter, self._trigger_group, self._fixed_interval_unit
                )
            except ConfigurationInvalid as exc:
                logger.error(
                    {
                        "event": "jobs.reconcile.invalid_config",
                        "job": name,
                        "job_class": identity.job_class,
                        "error": exc.message,
                    }
                )
                result.outcomes.append(ReconcileOutcome.SKIPPED_INVALID_CONFIG)
                return
            self._scheduler.create(self._describe_job(identity), trigger)
            result.outcomes.append(
                ReconcileOutcome.REINITIALIZED if reinitialized else ReconcileOutcome.INITIALIZED
            )

        if parameter.fire_once_on_startup:
            self._scheduler.trigger_now(name)
            result.outcomes.append(ReconcileOutcome.TRIGGERED_IMMEDIATELY)

    def _describe_job(self, identity: JobIdentity) -> JobDescriptor:
        return JobDescriptor(
            name=identity.name,
            group=self._job_group,
            job_class=identity.job_class,
            target=self._instantiate(identity.factory),
        )

    def _instantiate(self, factory: Callable[[], Any]) -> Callable[..., Any]:
        job = factory()
        bind = getattr(job, "bind", None)
        if callable(bind):
            bind(self._store)
        return job
