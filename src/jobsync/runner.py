"""Module-level entry point for jobs kept in a persistent job store.

A persistent job store saves each job as an importable reference plus its
arguments, so it cannot hold a job instance bound to a parameter store.
``run_job`` is registered instead, with the job class and name as arguments;
at fire time it resolves a factory for the job, binds the process's
parameter store and runs it.
"""
from __future__ import annotations

import importlib
import logging
from threading import Lock
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from jobsync.models import JobIdentity

if TYPE_CHECKING:
    from jobsync.parameters import ParameterStore

logger = logging.getLogger("jobsync.runner")

_lock = Lock()
_store: Optional["ParameterStore"] = None
_factories: dict[str, Callable[[], Any]] = {}


def install(store: "ParameterStore", identities: Iterable[JobIdentity] = ()) -> None:
    """Make ``store`` and the discovered job factories available to ``run_job``."""
    global _store
    with _lock:
        _store = store
        _factories.update({identity.name: identity.factory for identity in identities})


def reset() -> None:
    global _store
    with _lock:
        _store = None
        _factories.clear()


def resolve(job_class: str, name: str) -> Callable[[], Any]:
    """Return the factory for a job: the discovered one, else the class imported by name."""
    with _lock:
        factory = _factories.get(name)
    if factory is not None:
        return factory
    module_name, _, attribute = job_class.rpartition(".")
    if not module_name:
        raise LookupError(f"cannot import job class '{job_class}' for job '{name}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise LookupError(f"module '{module_name}' has no job class '{attribute}'") from None


def run_job(job_class: str, name: str) -> None:
    try:
        job = resolve(job_class, name)()
    except Exception as exc:
        logger.error({"event": "runner.resolve.failed", "job": name, "job_class": job_class, "error": str(exc)})
        raise
    bind = getattr(job, "bind", None)
    with _lock:
        store = _store
    if store is not None and callable(bind):
        bind(store)
    job()
