# database.py
import logging
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

import config

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = config.DATABASE_URL
if SQLALCHEMY_DATABASE_URL == "":
    raise ValueError("DATABASE URL is not configured. Please check env files")


def _is_memory_sqlite(url: str) -> bool:
    database = make_url(url).database
    return not database or database == ":memory:"


def _ensure_sqlite_dir(url: str):
    # sqlite creates the file but not its parent folder
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


# --- THE ENGINE ---
# check_same_thread is needed only for SQLite
if SQLALCHEMY_DATABASE_URL.startswith("postgresql"):
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600
    )
elif _is_memory_sqlite(SQLALCHEMY_DATABASE_URL):
    # a single shared connection, otherwise every session sees an empty database
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
else:
    _ensure_sqlite_dir(SQLALCHEMY_DATABASE_URL)
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False}
    )


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE and FK checks unless asked per connection
    if engine.dialect.name != "sqlite":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# --- THE SESSION ---
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# --- THE BASE ---
# Club and Event inherit from this
Base = declarative_base()


def init_db():
    """Creates the clubs and events tables if they don't exist yet."""
    import models  # noqa: F401 - registers the tables on Base.metadata

    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized: %s", engine.url.render_as_string(hide_password=True))


# --- DEPENDENCY ---
# Opens a session for a request and closes it afterwards, even on error.
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
