import os
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from settings import get_settings

logger = structlog.get_logger(__name__)


def _build_database_url() -> str:
    """Determine the SQLAlchemy DB URL using settings/env vars with sensible fallbacks."""
    configured = get_settings().database_url
    if configured:
        return configured

    host = os.getenv("DB_HOST")
    if host:
        user = os.getenv("DB_USER", "postgres")
        password = os.getenv("DB_PASSWORD", "")
        port = os.getenv("DB_PORT", "5432")
        name = os.getenv("DB_NAME", "postgres")
        return f"postgresql://{user}:{password}@{host}:{port}/{name}"

    # Default to local SQLite file for simple local development
    return "sqlite:///./studylink.db"


def build_engine(url: str) -> Engine:
    # Extra connect args only relevant for SQLite
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    sqlite_engine = create_engine(
        url,
        connect_args={
            "check_same_thread": False,
            "timeout": 15,
        },
        pool_pre_ping=True,
    )

    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA busy_timeout = 5000")
            cursor.execute("PRAGMA synchronous=NORMAL;")
        finally:
            cursor.close()
        # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside it
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


SessionLocal = sessionmaker(autocommit=False, autoflush=False)

Base = declarative_base()

# Process-wide engine, created on first use and disposed at shutdown.
_engine: Optional[Engine] = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = _build_database_url()
        _engine = build_engine(url)
        SessionLocal.configure(bind=_engine)
        logger.info("Database engine created", dialect=_engine.dialect.name)
    return _engine


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")


def create_db_and_tables():
    import models  # noqa: F401  # register mappers on Base.metadata

    Base.metadata.create_all(bind=get_engine())


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit the work done inside the block, roll everything back on error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_db():
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
