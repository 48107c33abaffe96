"""Strategies that supply the set of job identities to reconcile."""
from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import Any, Callable, Iterator, Mapping, Optional, Protocol, Sequence

from jobsync.errors import DiscoveryFailure
from jobsync.jobs import ScheduledJob
from jobsync.models import JobIdentity

logger = logging.getLogger("jobsync.discovery")


def parse_scan_targets(raw: Optional[str]) -> list[str]:
    """Split a comma-separated list of scan targets, trimming and dropping blanks and repeats."""
    if not raw:
        return []
    targets: list[str] = []
    for part in raw.split(","):
        target = part.strip()
        if target and target not in targets:
            targets.append(target)
    return targets


def qualified_name(obj: Any) -> str:
    cls = obj if inspect.isclass(obj) else type(obj)
    return f"{cls.__module__}.{cls.__qualname__}"


def _in_targets(job_class: str, scan_targets: Sequence[str]) -> bool:
    return any(job_class == target or job_class.startswith(target + ".") for target in scan_targets)


class JobClassDiscovery(Protocol):
    def discover(self, scan_targets: Sequence[str]) -> set[JobIdentity]:
        ...


class RegistryDiscovery:
    """Static factory table mapping a job name to a zero-argument factory.

    When scan targets are given only jobs whose class lives under one of the
    targets are returned; an empty target list returns every registered job.
    """

    def __init__(self, factories: Optional[Mapping[str, Callable[[], Any]]] = None) -> None:
        self._entries: dict[str, tuple[Callable[[], Any], str]] = {}
        for name, factory in (factories or {}).items():
            self.register(name, factory)

    def register(self, name: str, factory: Callable[[], Any], job_class: Optional[str] = None) -> None:
        self._entries[name] = (factory, job_class or qualified_name(factory))

    def discover(self, scan_targets: Sequence[str] = ()) -> set[JobIdentity]:
        identities = {
            JobIdentity(name=name, job_class=job_class, factory=factory)
            for name, (factory, job_class) in self._entries.items()
            if not scan_targets or _in_targets(job_class, scan_targets)
        }
        logger.info({"event": "discovery.registry.completed", "jobs": len(identities)})
        return identities


class PackageScanDiscovery:
    """Import each scan target and collect concrete ScheduledJob subclasses beneath it."""

    def __init__(self, base: type = ScheduledJob) -> None:
        self._base = base

    def discover(self, scan_targets: Sequence[str]) -> set[JobIdentity]:
        if not scan_targets:
            logger.info({"event": "discovery.scan.skipped", "reason": "no scan targets configured"})
            return set()
        logger.info({"event": "discovery.scan.started", "targets": list(scan_targets)})
        identities: set[JobIdentity] = set()
        for target in scan_targets:
            try:
                found = self._scan(target)
            except DiscoveryFailure as exc:
                logger.error({"event": "discovery.scan.target_failed", "target": target, "error": str(exc)})
                continue
            logger.debug({"event": "discovery.scan.target_completed", "target": target, "jobs": len(found)})
            identities.update(found)
        logger.info({"event": "discovery.scan.completed", "jobs": len(identities)})
        return identities

    def _scan(self, target: str) -> set[JobIdentity]:
        try:
            root = importlib.import_module(target)
        except Exception as exc:
            raise DiscoveryFailure(target, exc) from exc
        found: set[JobIdentity] = set()
        for module in self._walk(root):
            for _, cls in inspect.getmembers(module, inspect.isclass):
                if self._is_job_class(cls, module):
                    found.add(JobIdentity(name=cls.name, job_class=qualified_name(cls), factory=cls))
        return found

    def _walk(self, root: ModuleType) -> Iterator[ModuleType]:
        yield root
        path = getattr(root, "__path__", None)
        if path is None:
            return
        def onerror(name: str) -> None:
            logger.debug({"event": "discovery.scan.package_failed", "module": name}, exc_info=True)

        for info in pkgutil.walk_packages(path, prefix=root.__name__ + ".", onerror=onerror):
            try:
                yield importlib.import_module(info.name)
            except Exception:
                logger.debug({"event": "discovery.scan.module_failed", "module": info.name}, exc_info=True)

    def _is_job_class(self, cls: type, module: ModuleType) -> bool:
        return (
            cls.__module__ == module.__name__
            and issubclass(cls, self._base)
            and cls is not self._base
            and not inspect.isabstract(cls)
            and bool(str(getattr(cls, "name", "") or "").strip())
        )
