from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from jobsync.storage.models import Base

logger = logging.getLogger("jobsync.storage")


def _make_sqlite_url(path: Union[str, Path]) -> str:
    p = Path(path)
    if not p.is_absolute():
        p = p.resolve()
    return f"sqlite:///{p.as_posix()}"


def get_engine(path: Optional[Union[str, Path]] = None) -> Engine:
    """Return a SQLAlchemy Engine for the given path.

    - If path is None or 'memory', return an in-memory SQLite engine.
    - Otherwise ensure parent directories exist and return a file-based SQLite engine.
    """
    if path is None or path == "memory":
        url = "sqlite:///:memory:"
        # a single shared connection keeps the in-memory database alive across sessions
        return sa.create_engine(
            url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    url = _make_sqlite_url(path)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    # Parameter loads run on a worker thread.
    return sa.create_engine(
        url,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
    )


def init_db(engine: Engine) -> None:
    """Create the job_parameter table if it does not exist."""
    Base.metadata.create_all(engine)
    logger.info({"event": "storage.init_db", "engine": str(engine.url)})


def get_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, future=True, expire_on_commit=False)


@contextmanager
def get_session(factory: sessionmaker) -> Iterator[Session]:
    """Yield a Session that is committed on success, rolled back on error and always closed."""
    sess: Session = factory()
    try:
        yield sess
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    finally:
        sess.close()
