import logging
import time
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import declarative_base, sessionmaker

from errors import StoreFailure, StoreTimeout

logger = logging.getLogger(__name__)

Base = declarative_base()

# Driver messages that mean a statement or a lock wait ran past its bound
TIMEOUT_MARKERS = (
    "statement timeout",
    "canceling statement",
    "lock timeout",
    "database is locked",
    "timed out",
)


def create_store_engine(database_url: str, timeout: float = 100.0, **kwargs) -> Engine:
    """Engine whose every statement is bounded by ``timeout`` seconds."""
    connect_args = kwargs.pop("connect_args", {})
    if database_url.startswith("postgresql"):
        connect_args.setdefault("options", f"-c statement_timeout={int(timeout * 1000)}")
        connect_args.setdefault("connect_timeout", max(1, int(timeout)))
        kwargs.setdefault("pool_recycle", 300)
        kwargs.setdefault("pool_timeout", timeout)
    elif database_url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", timeout)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        echo=False,
        connect_args=connect_args,
        **kwargs,
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def wait_for_db(engine: Engine, max_retries=30, retry_interval=2):
    logger.info("Waiting for the database...")

    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database is available")
            return True
        except OperationalError as e:
            logger.warning("Attempt %d/%d: database not available yet: %s", attempt + 1, max_retries, e)
            if attempt < max_retries - 1:
                time.sleep(retry_interval)

    logger.error("Could not reach the database after %d attempts", max_retries)
    return False


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def _is_timeout(error: SQLAlchemyError) -> bool:
    if isinstance(error, PoolTimeoutError):
        return True
    if not isinstance(error, OperationalError):
        return False
    message = str(error.orig if error.orig is not None else error).lower()
    return any(marker in message for marker in TIMEOUT_MARKERS)


@contextmanager
def store_errors(operation: str):
    """Translate SQLAlchemy errors raised inside the block into StoreTimeout / StoreFailure."""
    try:
        yield
    except SQLAlchemyError as e:
        if _is_timeout(e):
            logger.warning("Store timeout during %s: %s", operation, e)
            raise StoreTimeout(f"{operation} timed out", operation=operation) from e
        logger.error("Store failure during %s: %s", operation, e)
        raise StoreFailure(f"{operation} failed", operation=operation) from e


def init_restaurant_config(session_factory: sessionmaker, initial_tables: int = 10):
    from models import Table
    from normalize import new_id, utcnow

    db = session_factory()
    try:
        existing_tables = db.query(Table).count()
        if existing_tables == 0:
            tables_to_create = min(initial_tables, 100)
            now = utcnow()
            for i in range(1, tables_to_create + 1):
                db.add(Table(
                    table_id=new_id(),
                    table_number=i,
                    number_of_guests=4,
                    created_at=now,
                    updated_at=now,
                ))
            db.commit()
            logger.info("Created %d tables", tables_to_create)
        else:
            logger.info("Database already has %d tables", existing_tables)
    except SQLAlchemyError as e:
        logger.error("Failed to seed tables: %s", e)
        db.rollback()
        raise
    finally:
        db.close()
