from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from discharge_tracker.core.config import get_settings

settings = get_settings()

# Single pooled engine shared by request handlers and the SLA monitor
engine = create_engine(
    settings.sqlalchemy_database_url,
    future=True,
    pool_pre_ping=True,
)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a DB session.

    Services commit their own unit of work; the session is always closed here.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[Session, None, None]:
    """
    One unit of work on an existing session: commit on success, roll back
    on any error and re-raise.

    Multi-table hand-offs (close ticket, set dashboard flag, open next
    ticket, create next step record) run inside a single block.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Context manager for running work outside of FastAPI dependencies
    (scripts, the SLA monitor loop).

    Usage:
        with session_scope() as db:
            scan_sla_breaches(db)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
