"""
SQLite database configuration with SQLAlchemy.
WAL mode enabled for better concurrency.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.engine import Engine

from siteadmin.config import settings

logger = logging.getLogger(__name__)

# Build database URL
DATABASE_URL = f"sqlite:///{settings.database_path}"

# Engine with SQLite settings
engine = create_engine(
    DATABASE_URL,
    connect_args={
        "check_same_thread": False,  # Allow use in multiple threads
    },
    echo=False,  # Change to True for query debug
)


# Configure WAL mode and busy_timeout via PRAGMA
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """
    Configure SQLite PRAGMAs on connect:
    - WAL mode for better concurrency
    - busy_timeout to wait for locks
    - foreign keys so post-tag links follow their posts
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Declarative base for ORM models
Base = declarative_base()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Session.info key marking an open unit of work
_UNIT_OF_WORK = "siteadmin.unit_of_work"


def get_db():
    """
    Dependency injection for FastAPI.
    Provides a database session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work over a session.

    If an outer unit of work is already open on this session, the block
    joins it: nothing is committed or rolled back here and errors simply
    propagate to the owner. Otherwise the block owns the transaction,
    committing on success and rolling back (then re-raising) on failure.
    """
    if db.info.get(_UNIT_OF_WORK):
        yield db
        return

    db.info[_UNIT_OF_WORK] = True
    try:
        yield db
        db.commit()
    except Exception as e:
        logger.warning(f"Rolling back transaction: {e!r}")
        db.rollback()
        raise
    finally:
        db.info.pop(_UNIT_OF_WORK, None)
