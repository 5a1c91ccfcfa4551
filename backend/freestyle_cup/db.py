import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from .settings import settings

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

_engine = None
_SessionLocal = None
_swap_lock = threading.Lock()

def _build(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, future=True, echo=False, connect_args=connect_args)
    return engine, sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

def init_db(url: Optional[str] = None) -> None:
    global _engine, _SessionLocal
    with _swap_lock:
        if _engine is not None:
            return
        _engine, _SessionLocal = _build(url or settings.CUP_DB_URL)
        from . import models  # noqa
        Base.metadata.create_all(bind=_engine)

def reload_db(url: Optional[str] = None) -> None:
    """Swap the live engine for a fresh one.

    Sessions opened before the swap keep the sessionmaker they grabbed and finish
    on the old pool; the old engine is disposed after the swap, which only closes
    connections that are checked in.
    """
    global _engine, _SessionLocal
    new_engine, new_factory = _build(url or settings.CUP_DB_URL)
    from . import models  # noqa
    Base.metadata.create_all(bind=new_engine)
    with _swap_lock:
        old_engine = _engine
        _engine, _SessionLocal = new_engine, new_factory
    if old_engine is not None:
        old_engine.dispose()
    logger.info("Database handle reloaded")

def dispose_db() -> None:
    global _engine, _SessionLocal
    with _swap_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _SessionLocal = None

def session_factory() -> sessionmaker:
    if _SessionLocal is None:
        init_db()
    return _SessionLocal

def get_session() -> Iterator[Session]:
    factory = session_factory()
    db = factory()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Commit everything done in the block, or roll all of it back."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
