"""Database engine and session setup."""

from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings


class Base(DeclarativeBase):
    pass


def _ensure_sync_driver(url: URL) -> URL:
    """Force a synchronous driver for the ORM engine."""

    if url.drivername.startswith("postgresql+"):
        if any(token in url.drivername for token in ("async", "aiopg")):
            url = url.set(drivername="postgresql+psycopg")
    elif url.drivername == "postgresql":
        url = url.set(drivername="postgresql+psycopg")
    elif url.drivername.startswith("sqlite+"):
        if "aiosqlite" in url.drivername:
            url = url.set(drivername="sqlite")

    return url


def get_database_url(raw_url: Optional[str] = None) -> str:
    """Return a database URL with a guaranteed synchronous driver."""

    url = make_url(raw_url or get_settings().database_url)
    # str(url) masks the password
    return _ensure_sync_driver(url).render_as_string(hide_password=False)


def create_db_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=30,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


_engine: Optional[Engine] = None
_session_local: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """
    Create and cache the database engine.

    Lazy so that DATABASE_URL is read when the app starts, not at import time.
    """
    global _engine
    if _engine is None:
        _engine = create_db_engine(get_database_url())
    return _engine


def get_session_local() -> sessionmaker:
    global _session_local
    if _session_local is None:
        _session_local = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_local


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


def init_database(engine: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
