from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from .config import settings

logger = logging.getLogger(__name__)

connect_args = {}
if "sqlite" in settings.DATABASE_URL:
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
    echo=settings.DEBUG
)

# Enable WAL Mode for SQLite Concurrency
if "sqlite" in settings.DATABASE_URL:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session):
    """
    Transaction boundary for one business operation.

    Everything flushed inside the block commits together; any exception
    rolls the whole set back and is re-raised. Helpers called inside the
    block only flush.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back unit of work")
        db.rollback()
        db.info.pop("on_commit", None)
        raise
    run_commit_callbacks(db)


def on_commit(db: Session, callback) -> None:
    """Run ``callback()`` once the current unit of work has committed"""
    db.info.setdefault("on_commit", []).append(callback)


def run_commit_callbacks(db: Session) -> None:
    callbacks = db.info.pop("on_commit", [])
    for callback in callbacks:
        try:
            callback()
        except Exception:
            logger.exception("Post-commit callback %r failed", callback)
