import logging
import os
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import DATABASE_URL, DB_TRANSACTION_MAX_RETRIES
from .exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Get environment-specific pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Postgres SQLSTATEs worth retrying: serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def _enable_sqlite_immediate_transactions(engine) -> None:
    """
    Make pysqlite open every transaction with BEGIN IMMEDIATE.

    The default driver defers BEGIN until the first write, which lets two
    read-check-write sequences interleave. IMMEDIATE takes the write lock up
    front so a second booking waits for the first to commit.
    """

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs):
    """Create an engine for ``url`` with the pool and locking settings we rely on"""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        new_engine = create_engine(url, connect_args=connect_args, **kwargs)
        _enable_sqlite_immediate_transactions(new_engine)
        return new_engine

    return create_engine(
        url,
        pool_pre_ping=True,  # Test connections before using
        pool_recycle=POOL_RECYCLE,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        isolation_level="SERIALIZABLE",
        echo=False,  # Don't log all SQL (use slow query logging instead)
        **kwargs,
    )


try:
    engine = build_engine(DATABASE_URL)
    logger.info("✅ Database engine created successfully")
    logger.info(
        f"📊 Connection pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}, timeout={POOL_TIMEOUT}s"
    )
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

# Slow query logging for performance monitoring
if ENABLE_QUERY_LOGGING:

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

    logger.info(f"📊 Slow query logging enabled (threshold: {SLOW_QUERY_THRESHOLD}s)")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_session_factory() -> sessionmaker:
    """Dependency returning the session factory used for transactional units of work"""
    return SessionLocal


def is_retryable_error(error: DBAPIError) -> bool:
    """Lock contention and serialization failures are transient; everything else is not"""
    if isinstance(error, OperationalError):
        return True
    sqlstate = getattr(getattr(error, "orig", None), "pgcode", None) or getattr(
        getattr(error, "orig", None), "sqlstate", None
    )
    return sqlstate in RETRYABLE_SQLSTATES


def run_in_transaction(
    session_factory: sessionmaker,
    work: Callable[[Session], T],
    max_retries: Optional[int] = None,
) -> T:
    """
    Run ``work`` inside a single transaction and commit it.

    Any exception rolls the transaction back. Transient store failures are
    retried up to ``max_retries`` extra times before surfacing as
    UpstreamUnavailable; domain errors raised by ``work`` propagate untouched
    on the first attempt.
    """
    retries = DB_TRANSACTION_MAX_RETRIES if max_retries is None else max_retries
    attempt = 0

    while True:
        attempt += 1
        db = session_factory()
        try:
            result = work(db)
            db.commit()
            return result
        except DBAPIError as e:
            db.rollback()
            if not is_retryable_error(e):
                raise
            if attempt > retries:
                logger.error(f"❌ Transaction failed after {attempt} attempts: {e}")
                raise UpstreamUnavailable("Store transaction could not be committed") from e
            logger.warning(f"⚠️ Transaction attempt {attempt} failed, retrying: {e}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
