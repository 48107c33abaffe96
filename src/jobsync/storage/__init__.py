"""Storage package exports for SQLAlchemy helpers and models."""
from jobsync.storage.db import get_engine, get_session, get_session_factory, init_db  # noqa: F401
from jobsync.storage.models import Base, JobParameterRow  # noqa: F401

__all__ = ["Base", "JobParameterRow", "get_engine", "init_db", "get_session", "get_session_factory"]
