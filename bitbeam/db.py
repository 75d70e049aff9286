import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import QueuePool
from sqlmodel import SQLModel, create_engine

from bitbeam.config import Config

logger = logging.getLogger("bitbeam.db")

# Columns added after the first release of the files table, with the DDL used to backfill them.
_FILES_COLUMN_BACKFILL = {
    "file_name": "VARCHAR NOT NULL DEFAULT 'unknown'",
    "download_url": "VARCHAR NOT NULL DEFAULT ''",
    "owner": "VARCHAR DEFAULT NULL",
    "pending_deletion": "BOOLEAN NOT NULL DEFAULT FALSE",
}


def build_engine(config: Config) -> Engine:
    # Connection pooling keeps long-running processes healthy across database restarts
    return create_engine(
        config.database_url,
        connect_args=config.db_connect_args,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,   # Recycle connections after 1 hour
        echo=False,
    )


def init_db(engine: Engine) -> None:
    # Import for side effect: registers the tables on SQLModel.metadata
    from bitbeam import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    ensure_schema_compatibility(engine)


def ensure_schema_compatibility(engine: Engine) -> None:
    """Add columns that a files table created by an older release is missing."""
    try:
        existing = {column["name"] for column in inspect(engine).get_columns("files")}
        missing = [name for name in _FILES_COLUMN_BACKFILL if name not in existing]
        if not missing:
            return
        with engine.begin() as conn:
            for name in missing:
                conn.execute(text(f"ALTER TABLE files ADD COLUMN {name} {_FILES_COLUMN_BACKFILL[name]}"))
        logger.info("event=schema_upgraded added_columns=%s", ",".join(missing))
    except OperationalError as e:
        logger.warning("Could not check or migrate database schema: %s", e)


def ensure_connection(engine: Engine) -> bool:
    """
    Verify that the database connection is alive.
    This is useful for long-running processes that might encounter stale connections.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except OperationalError:
        return False
