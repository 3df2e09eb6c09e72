from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from fundraise.models import Base, InvestorRow
from fundraise.seed import default_investors

log = logging.getLogger(__name__)

_lock = threading.Lock()
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def init_db(database_url: str) -> Engine:
    """Create the engine and tables for *database_url* (``sqlite:///...``).

    Any previous engine is disposed first.
    """
    global _engine, _SessionLocal
    with _lock:
        if _engine is not None:
            _engine.dispose()
        _engine = create_engine(database_url, connect_args={"check_same_thread": False})
        Base.metadata.create_all(_engine)
        _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
        log.debug("Database ready at %s", database_url)
        return _engine


def get_session() -> Session:
    with _lock:
        if _SessionLocal is None:
            raise RuntimeError("init_db() has not been called")
        factory = _SessionLocal
    return factory()


def session_factory() -> sessionmaker[Session]:
    with _lock:
        if _SessionLocal is None:
            raise RuntimeError("init_db() has not been called")
        return _SessionLocal


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Transactional scope: commits on success, rolls back on error.

    Usage::

        with session_scope() as session:
            ...
    """
    session = factory() if factory is not None else get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def seed_if_empty(session: Session) -> int:
    """Insert the default pipeline when the investors table is empty.

    Returns the number of rows inserted (caller must commit).
    """
    count = session.execute(select(func.count()).select_from(InvestorRow)).scalar_one()
    if count:
        return 0
    rows = [InvestorRow.from_investor(inv) for inv in default_investors()]
    session.add_all(rows)
    log.info("Seeded %d default investors", len(rows))
    return len(rows)
