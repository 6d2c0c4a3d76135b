"""Engine, session factory and storage retry helpers."""
import functools
import logging
import time

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings
from app.core.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)

Base = declarative_base()

# Errors worth one more attempt: dropped connections, lock/statement
# timeouts and pool exhaustion.
TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError)
STORAGE_ATTEMPTS = 2


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine whose every operation is bounded by STORAGE_TIMEOUT_SECONDS."""
    timeout = settings.STORAGE_TIMEOUT_SECONDS
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_timeout=timeout,
        pool_recycle=1800,
        connect_args={
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000} -c lock_timeout={timeout * 1000}",
        },
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def with_storage_retry(func):
    """Retry a service call once after a transient storage failure.

    The wrapped function must take the session as its first argument. The
    session is rolled back between attempts so the retry starts clean; when
    the second attempt also fails the caller gets StorageUnavailable.
    """
    @functools.wraps(func)
    def wrapper(db, *args, **kwargs):
        for attempt in range(1, STORAGE_ATTEMPTS + 1):
            try:
                return func(db, *args, **kwargs)
            except TRANSIENT_ERRORS as e:
                db.rollback()
                if attempt == STORAGE_ATTEMPTS:
                    logger.error(f"{func.__name__} failed after {attempt} attempts: {e}")
                    raise StorageUnavailable(f"Storage unavailable during {func.__name__}") from e
                logger.warning(f"{func.__name__} hit a transient storage error, retrying: {e}")
                time.sleep(settings.STORAGE_RETRY_BACKOFF_SECONDS * attempt)
    return wrapper
