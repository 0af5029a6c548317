"""
core/db.py -- Database engine construction and startup connection retry.

Stores call make_engine() so every repository gets the same SQLite tuning
(check_same_thread off, WAL journal). connect_with_retry() wraps store
construction in lifespan startup: a database that is still booting (common
under docker-compose) raises OperationalError on first contact, so startup
retries with exponential backoff before giving up. Nothing else retries --
request-time failures surface as 500s.

Layer rule: core/ is the kernel. No imports from api/, auth/, or forms/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger("formdesk.db")

T = TypeVar("T")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. In-memory databases ignore it.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an Engine for db_url with SQLite-specific connection settings."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def connect_with_retry(factory: Callable[[], T], attempts: int, backoff_seconds: float) -> T:
    """Call factory() until it stops raising OperationalError.

    Waits backoff_seconds * 2**n between attempts (capped at 30s) and logs
    each retry at WARNING. The last OperationalError is re-raised once
    attempts are exhausted. Other exceptions propagate immediately.
    """
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=backoff_seconds, max=30),
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(factory)
