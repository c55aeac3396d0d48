from __future__ import annotations

from typing import Any, Dict, Optional, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import NullPool


def create_db_engine(
    url: Union[str, URL],
    *,
    echo: bool = False,
    connect_args: Optional[Dict[str, Any]] = None,
    isolation_level: Optional[str] = None,
) -> Engine:
    """Create a SQLAlchemy engine for the provisioner or the long-lived runtime.

    Notes:
      - SQLite needs check_same_thread=False because the engine is shared by
        request threads.
      - isolation_level="AUTOCOMMIT" is used for bootstrap engines; CREATE
        DATABASE cannot run inside a transaction on Postgres.
    """
    backend = url.get_backend_name() if isinstance(url, URL) else str(url).split(":", 1)[0]
    is_sqlite = backend.startswith("sqlite")

    connect_args = dict(connect_args or {})
    if is_sqlite:
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 5)

    engine_kwargs: Dict[str, Any] = dict(
        echo=echo,
        future=True,
        connect_args=connect_args,
        pool_pre_ping=True,
    )
    if isolation_level:
        engine_kwargs["isolation_level"] = isolation_level
    if is_sqlite:
        # File-backed SQLite shares poorly across a QueuePool.
        engine_kwargs["poolclass"] = NullPool

    engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA busy_timeout=5000")
            finally:
                cursor.close()

    return engine
