"""Reconcile configured periodic jobs against a scheduler engine."""
from jobsync.discovery import PackageScanDiscovery, RegistryDiscovery, parse_scan_targets
from jobsync.jobs import ScheduledJob
from jobsync.models import JobIdentity, JobParameter, ReconcileOutcome, ReconcileReport
from jobsync.parameters import ParameterStore
from jobsync.reconciler import Reconciler
from jobsync.scheduler import ApschedulerFacade, SchedulerFacade
from jobsync.sources import ParameterSource, SqlParameterSource, StaticParameterSource

__all__ = [
    "ApschedulerFacade",
    "JobIdentity",
    "JobParameter",
    "PackageScanDiscovery",
    "ParameterSource",
    "ParameterStore",
    "ReconcileOutcome",
    "ReconcileReport",
    "Reconciler",
    "RegistryDiscovery",
    "ScheduledJob",
    "SchedulerFacade",
    "SqlParameterSource",
    "StaticParameterSource",
    "parse_scan_targets",
]
