# tempchat/infra/sqlite.py

import logging
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from tempchat.core.config import DATABASE_URL
from tempchat.core.errors import StorageUnavailable
from tempchat.models.base import Base

logger = logging.getLogger(__name__)

# =========================
# ENGINE CONFIGURATION
# =========================


def _ensure_parent_dir(url: str) -> None:
    """SQLite will not create the directory holding the database file."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def build_engine(url: str = DATABASE_URL):
    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": 15},
        pool_pre_ping=True,  # Check connections before using them
        echo=False           # Set True to see SQL statements (debugging)
    )

    @event.listens_for(engine, "connect")
    def _sqlite_pragmas(dbapi_connection, connection_record):
        # WAL lets open streams keep reading while a post is being written
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


_ensure_parent_dir(DATABASE_URL)
engine = build_engine(DATABASE_URL)

# =========================
# SESSION CONFIGURATION
# =========================

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine
)

# =========================
# DATABASE FUNCTIONS
# =========================


def get_db():
    """Request-scoped session. Routes commit their own writes."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def db_session():
    # one unit of work outside a request: the registry's reads, init_db.py
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def storage_guard(db=None):
    """
    Turn driver-level failures into StorageUnavailable. Rolls back the
    session so it can be reused by the caller.
    """
    try:
        yield
    except OperationalError as e:
        if db is not None:
            db.rollback()
        logger.exception("Storage operation failed")
        raise StorageUnavailable(str(e.orig) if e.orig else str(e)) from e


def init_db(bind=None):
    """
    Create all tables based on registered models.
    """
    # Import models here to register them with Base
    from tempchat.models.message import Message  # noqa: F401
    from tempchat.models.user import User  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ready")


def test_connection(bind=None) -> bool:
    """
    Test DB connection.
    """
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except OperationalError as e:
        logger.error("Database connection failed: %s", e)
        return False
