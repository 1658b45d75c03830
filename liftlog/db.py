# liftlog/db.py
# -----------------------------------------------------------------------------
# DB connection
# Priority:
#   1) Cloud SQL (PostgreSQL) if CLOUD_SQL_CONNECTION_NAME is set
#   2) env LIFTLOG_DB (absolute path to liftlog.db)
#   3) ./data/liftlog.db
#   4) ./liftlog.db  (fallback)
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path as OSPath

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

log = logging.getLogger("liftlog-api")

_cloud_sql = os.getenv("CLOUD_SQL_CONNECTION_NAME")  # e.g. project:region:instance
_db_user = os.getenv("DB_USER", "postgres")
_db_pass = os.getenv("DB_PASSWORD", "")
_db_name = os.getenv("DB_NAME", "liftlog")

if _cloud_sql:
    _socket_path = f"/cloudsql/{_cloud_sql}"
    DB_PATH = f"postgresql+asyncpg://{_db_user}:{_db_pass}@/{_db_name}?host={_socket_path}"
    engine = create_async_engine(
        DB_PATH, echo=False, pool_pre_ping=True,
        pool_size=20, max_overflow=30, pool_timeout=30,
    )
    log.info(f"Using Cloud SQL (async): {_cloud_sql}")
else:
    _root = OSPath(__file__).resolve().parent.parent
    env_db = os.getenv("LIFTLOG_DB")
    candidates = [
        env_db,
        str((_root / "data" / "liftlog.db").resolve()),
        str((_root / "liftlog.db").resolve()),
    ]
    DB_PATH = env_db or next((p for p in candidates[1:] if OSPath(p).exists()), candidates[-1])
    engine = create_async_engine(f"sqlite+aiosqlite:///{DB_PATH}", echo=False)
    log.info(f"Using SQLite (async): {DB_PATH}")

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


def db_type() -> str:
    """Return a safe description of the DB type (no credentials)."""
    if _cloud_sql:
        return f"Cloud SQL PostgreSQL ({_cloud_sql})"
    return "SQLite"


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
