"""Database configuration and setup."""

import time
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..config import get_config
from ..utils.logging_config import get_logger

logger = get_logger('database')

# Session.info key holding the per-call timeout in seconds
CALL_TIMEOUT_KEY = "sitetracker.call_timeout"


def _is_sqlite_url(url: str) -> bool:
    """Check if database URL is for SQLite."""
    return url.startswith("sqlite:")


def _sqlite_pragma_listener(busy_timeout_ms: int):
    def _setup_sqlite_pragma(dbapi_connection, connection_record):
        """Set SQLite pragmas for concurrent writers."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return _setup_sqlite_pragma


def _sqlite_busy_timeout_reset(busy_timeout_ms: int):
    def _reset_busy_timeout(dbapi_connection, connection_record, connection_proxy):
        """Restore the configured lock wait when a connection leaves the pool."""
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.close()

    return _reset_busy_timeout


def apply_call_timeout(connection: Connection, timeout: float) -> None:
    """
    Bound lock waits and statements on ``connection`` to ``timeout`` seconds.

    SQLite gets a busy_timeout, PostgreSQL transaction-local statement and
    lock timeouts. Other dialects are left unbounded.
    """
    timeout_ms = max(1, int(timeout * 1000))
    dialect = connection.dialect.name

    if dialect == "sqlite":
        connection.exec_driver_sql(f"PRAGMA busy_timeout={timeout_ms}")
    elif dialect == "postgresql":
        connection.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout_ms}")
        connection.exec_driver_sql(f"SET LOCAL lock_timeout = {timeout_ms}")
    else:
        logger.debug("No driver-level call timeout", extra={"dialect": dialect})


@event.listens_for(Session, "after_begin")
def _apply_session_call_timeout(session, transaction, connection):
    timeout = session.info.get(CALL_TIMEOUT_KEY)
    if timeout is not None:
        apply_call_timeout(connection, timeout)


def _setup_query_logging(engine: Engine) -> None:
    """Log slow queries as warnings."""

    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        context._query_start_time = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):
        total = time.perf_counter() - context._query_start_time
        if total > 0.1:
            logger.warning(
                f"Slow query ({total:.3f}s): {statement[:200]}{'...' if len(statement) > 200 else ''}"
            )


def create_database_engine(
    database_url: Optional[str] = None,
    echo: Optional[bool] = None,
    busy_timeout_ms: Optional[int] = None,
) -> Engine:
    """Create database engine with appropriate configuration."""
    db_config = get_config().database
    database_url = database_url or db_config.url
    echo = db_config.echo if echo is None else echo
    busy_timeout_ms = db_config.busy_timeout_ms if busy_timeout_ms is None else busy_timeout_ms

    if _is_sqlite_url(database_url):
        engine = create_engine(
            database_url,
            connect_args={
                "check_same_thread": False,
                "timeout": busy_timeout_ms / 1000,
            },
            echo=echo,
        )
        event.listen(engine, "connect", _sqlite_pragma_listener(busy_timeout_ms))
        event.listen(engine, "checkout", _sqlite_busy_timeout_reset(busy_timeout_ms))
    else:
        engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    _setup_query_logging(engine)
    return engine


# Base class for models
Base = declarative_base()

_engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def get_engine() -> Engine:
    """Return the process engine, creating it from config on first use."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
        SessionLocal.configure(bind=_engine)
    return _engine


def init_db(engine: Optional[Engine] = None) -> None:
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401  registers tables on Base.metadata

    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready", extra={"url": str(engine.url)})


def get_db():
    """Get database session."""
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
