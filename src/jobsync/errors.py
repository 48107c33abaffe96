"""Error kinds raised while loading parameters, discovering and reconciling jobs."""
from __future__ import annotations

from typing import Optional


class JobSyncError(Exception):
    """Base exception for jobsync errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ParameterLoadFailure(JobSyncError):
    """The backing source could not produce a parameter record for a job."""

    def __init__(self, name: str, cause: Optional[BaseException] = None):
        self.name = name
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to load parameters for job '{name}'{detail}")


class ParameterNotFound(ParameterLoadFailure):
    """No parameter record exists for the job."""

    def __init__(self, name: str):
        self.name = name
        self.cause = None
        JobSyncError.__init__(self, f"No parameters found for job '{name}'")


class ConfigurationInvalid(JobSyncError):
    """An activated job has neither a cron expression nor a positive fixed interval."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)


class SchedulerOperationFailure(JobSyncError):
    """A create/delete/trigger call into the scheduler engine failed."""

    def __init__(self, operation: str, name: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.name = name
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Scheduler {operation} failed for job '{name}'{detail}")


class DiscoveryFailure(JobSyncError):
    """A scan target could not be read."""

    def __init__(self, target: str, cause: Optional[BaseException] = None):
        self.target = target
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Unable to scan '{target}'{detail}")
