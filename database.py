"""
Database connection for the store.

The engine and session factory are created once at import from DATABASE_URL.
Request handlers get their own session through the get_db dependency; tables
are created by init_db() when the application starts.
"""

import logging
import os
import time

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

log = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./store.db")
DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", 5))
DB_CONNECT_DELAY = float(os.getenv("DB_CONNECT_DELAY", 5))

Base = declarative_base()


def create_db_engine(url, **kwargs):
    """Build an engine; SQLite connections get case-sensitive LIKE to match PostgreSQL."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, pool_pre_ping=True, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _sqlite_case_sensitive_like(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA case_sensitive_like = ON")
            cursor.close()

    return engine


engine = create_db_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def wait_for_database(bind, retries=DB_CONNECT_RETRIES, delay=DB_CONNECT_DELAY):
    """Probe the database until it answers, giving up after `retries` attempts."""
    for attempt in range(1, retries + 1):
        try:
            with bind.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            log.warning("Error pinging database (retry %d): %s", attempt, e)
            if attempt == retries:
                log.error("Database unreachable after %d attempts", retries)
                raise
            time.sleep(delay)
        else:
            log.info("Successfully connected to the database")
            return


def init_db(bind=None):
    bind = bind or engine
    # models must be imported so their tables are registered on Base.metadata
    import models  # noqa: F401

    wait_for_database(bind)
    Base.metadata.create_all(bind=bind)
    log.info("Database schema is up to date")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
