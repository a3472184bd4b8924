"""
Database connection and session management.

create_store_engine() builds the engine for either backend:
  - SQLite: single shared connection (StaticPool), WAL + foreign keys,
    "./relative.db" paths resolve against backend/
  - PostgreSQL: QueuePool with pre-ping and recycling, per-statement timeout
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from typing import Generator
import logging
import os

from tour_search.core.config import settings
from tour_search.db.models import Base

logger = logging.getLogger(__name__)

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
STATEMENT_TIMEOUT_MS = 30000


def _resolve_sqlite_url(url: str) -> str:
    path = url.replace("sqlite:///", "", 1)
    if url.startswith("sqlite:///") and path.startswith("./"):
        return f"sqlite:///{os.path.join(BACKEND_DIR, path[2:])}"
    return url


def _sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _postgres_session_setup(dbapi_conn, connection_record):
    """Tag connections so they are identifiable in pg_stat_activity."""
    cursor = dbapi_conn.cursor()
    cursor.execute("SET application_name = 'tour-package-search'")
    cursor.close()


def create_store_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        store = create_engine(
            _resolve_sqlite_url(url),
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(store, "connect", _sqlite_pragmas)
        return store

    store = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=settings.database_pool_pre_ping,
        pool_timeout=30,
        connect_args={
            "connect_timeout": 10,
            "options": f"-c statement_timeout={STATEMENT_TIMEOUT_MS}",
        },
    )
    event.listen(store, "connect", _postgres_session_setup)
    return store


engine = create_store_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session. Connection errors surface from the repository
    as StoreUnavailableError.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables (startup)."""
    logger.info(f"Initializing schema on {engine.url.get_backend_name()}")
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema initialized")
