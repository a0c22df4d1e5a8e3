from contextlib import contextmanager
from typing import Callable

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ugc_missions.config import settings


def _engine_kwargs() -> dict:
    if settings.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_POOL_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
    }


engine = create_engine(settings.DATABASE_URL, future=True, **_engine_kwargs())
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


class Base(DeclarativeBase):
    pass


def after_commit(session: Session, callback: Callable[[], object]) -> None:
    """Run ``callback`` once the enclosing unit of work commits; drop it on rollback."""
    session.info.setdefault("after_commit", []).append(callback)


@contextmanager
def unit_of_work(session: Session):
    """
    Commit once when the outermost unit of work exits, roll back on any error.

    Nested units (a service invoked by another service during a cascade) join the
    enclosing one, so the whole composite transition lands or none of it does.
    Callbacks registered with ``after_commit`` run only after the outermost commit.
    """
    depth = session.info.get("uow_depth", 0)
    session.info["uow_depth"] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except Exception:
        if depth == 0:
            session.rollback()
            session.info.pop("after_commit", None)
        raise
    finally:
        session.info["uow_depth"] = depth
    if depth == 0:
        for callback in session.info.pop("after_commit", []):
            callback()
