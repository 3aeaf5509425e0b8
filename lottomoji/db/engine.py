from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from .utils import resolve_sqlite_url

# Get DB url
load_dotenv()
# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)

# Seconds a SQLite connection waits on a locked database before raising.
SQLITE_BUSY_TIMEOUT = 30


def make_engine(database_url: Optional[str] = None, echo: bool = False):
    url = database_url or DEFAULT_SQLITE_URL
    connect_args = {}
    if url.startswith("sqlite") and ":memory:" not in url:
        # Concurrent draw attempts contend on the same file; let writers queue
        # instead of failing immediately with "database is locked".
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT
    engine = create_engine(
        url,
        echo=echo,
        future=True,
        connect_args=connect_args,
    )
    if url.startswith("sqlite"):
        # ensure FK constraints are enforced on SQLite
        from sqlalchemy import event

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_sessionmaker(engine):
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,  # Keep objects accessible after commit
        future=True,
    )
