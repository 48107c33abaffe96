from datetime import timedelta
from pathlib import Path
from typing import Any, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="JOBSYNC_", extra="ignore")

    APP_NAME: str = "jobsync"
    VERSION: str = "0.1.0"
    ENV: str = "dev"

    # Parameter cache
    PARAMETER_CACHE_TTL_SECONDS: int = 1800
    PARAMETER_LOAD_TIMEOUT_SECONDS: float = 10.0
    PARAMETER_SOURCE: Literal["database", "static"] = "database"
    # SQLite file holding the job_parameter table.
    DB_PATH: Path = Path("jobsync.db")
    # Records served by the static source, e.g. JOBSYNC_JOB_PARAMS='[{"name": "purge-temp"}]'
    JOB_PARAMS: list[dict[str, Any]] = []

    # Scheduler registration
    JOB_GROUP: str = "metrics_jobs_group"
    TRIGGER_GROUP: str = "metrics_triggers_group"
    JOB_PACKAGES: str = ""
    FIXED_INTERVAL_UNIT: Literal["seconds", "minutes"] = "seconds"
    RECONCILE_WORKERS: int = 1
    SCHEDULER_TIMEZONE: str = "UTC"
    # Keep registrations in DB_PATH so they survive a restart.
    SCHEDULER_PERSIST: bool = False
    SCHEDULER_INSTANCE_NAME: str = "jobsync"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def parameter_cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.PARAMETER_CACHE_TTL_SECONDS)


settings = Settings()
