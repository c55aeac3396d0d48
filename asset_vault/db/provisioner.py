"""Engine provisioner: make sure the target database (and schema) exist.

Invariants:
    - Every bootstrap engine is disposed before provision() returns, on success
      and on failure.
    - Only "already exists" races are tolerated; they are recognised by SQLSTATE
      per object kind, never by matching error text.
    - Database and schema names are validated by ConnectionDescriptor and quoted
      by the dialect before they reach a CREATE statement.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import ArgumentError, DBAPIError

from asset_vault.core.errors import ConfigurationError, ProvisioningError
from asset_vault.db.descriptor import MYSQL, POSTGRES, ConnectionDescriptor
from asset_vault.db.session import create_db_engine

logger = logging.getLogger(__name__)

EngineFactory = Callable[..., Engine]

MYSQL_CHARSET = "utf8mb4"
MYSQL_COLLATION = "utf8mb4_general_ci"

# SQLSTATE codes Postgres raises when a concurrent CREATE won the race.
PG_DUPLICATE_DATABASE = {"42P04", "23505"}
PG_DUPLICATE_SCHEMA = {"42P06", "23505"}


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _quote(conn: Connection, name: str) -> str:
    return conn.dialect.identifier_preparer.quote(name)


@contextmanager
def bootstrap_connection(engine_factory: EngineFactory, url: URL) -> Iterator[Connection]:
    """Short-lived AUTOCOMMIT connection used only to issue CREATE statements."""
    redacted = url.render_as_string(hide_password=True)
    try:
        engine = engine_factory(url, isolation_level="AUTOCOMMIT")
    except (ArgumentError, ImportError) as exc:
        raise ConfigurationError(f"Cannot create engine for {redacted}: {exc}") from exc

    try:
        try:
            conn = engine.connect()
        except DBAPIError as exc:
            raise ConfigurationError(f"Cannot connect to {redacted}: {exc}") from exc
        with conn:
            yield conn
    finally:
        engine.dispose()


class ProvisioningStrategy:
    name = "noop"

    def provision(self, descriptor: ConnectionDescriptor, engine_factory: EngineFactory) -> None:
        logger.debug("No provisioning needed for driver %r", descriptor.driver)


class MySQLProvisioner(ProvisioningStrategy):
    name = MYSQL

    def provision(self, descriptor: ConnectionDescriptor, engine_factory: EngineFactory) -> None:
        with bootstrap_connection(engine_factory, descriptor.server_url()) as conn:
            stmt = (
                f"CREATE DATABASE IF NOT EXISTS {_quote(conn, descriptor.database)} "
                f"DEFAULT CHARACTER SET {MYSQL_CHARSET} COLLATE {MYSQL_COLLATION}"
            )
            try:
                conn.execute(text(stmt))
            except DBAPIError as exc:
                raise ProvisioningError(f"Failed to create database {descriptor.database!r}: {exc}") from exc
        logger.info("MySQL database %s is ready", descriptor.database)


class PostgresProvisioner(ProvisioningStrategy):
    name = POSTGRES

    def provision(self, descriptor: ConnectionDescriptor, engine_factory: EngineFactory) -> None:
        self._ensure_database(descriptor, engine_factory)
        if descriptor.schema:
            self._ensure_schema(descriptor, engine_factory)

    def _ensure_database(self, descriptor: ConnectionDescriptor, engine_factory: EngineFactory) -> None:
        with bootstrap_connection(engine_factory, descriptor.admin_url()) as conn:
            try:
                row = conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": descriptor.database},
                ).first()
            except DBAPIError as exc:
                raise ProvisioningError(f"Failed to look up database {descriptor.database!r}: {exc}") from exc

            if row is not None:
                logger.info("Postgres database %s already exists", descriptor.database)
                return

            try:
                conn.execute(text(f"CREATE DATABASE {_quote(conn, descriptor.database)}"))
            except DBAPIError as exc:
                if _sqlstate(exc) not in PG_DUPLICATE_DATABASE:
                    raise ProvisioningError(f"Failed to create database {descriptor.database!r}: {exc}") from exc
                logger.info("Postgres database %s was created concurrently", descriptor.database)
                return
            logger.info("Created Postgres database %s", descriptor.database)

    def _ensure_schema(self, descriptor: ConnectionDescriptor, engine_factory: EngineFactory) -> None:
        with bootstrap_connection(engine_factory, descriptor.target_url()) as conn:
            try:
                conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {_quote(conn, descriptor.schema)}"))
            except DBAPIError as exc:
                if _sqlstate(exc) not in PG_DUPLICATE_SCHEMA:
                    raise ProvisioningError(f"Failed to create schema {descriptor.schema!r}: {exc}") from exc
                logger.info("Postgres schema %s was created concurrently", descriptor.schema)
                return
        logger.info("Postgres schema %s is ready", descriptor.schema)


STRATEGIES: Dict[str, ProvisioningStrategy] = {
    MYSQL: MySQLProvisioner(),
    POSTGRES: PostgresProvisioner(),
}
_NOOP = ProvisioningStrategy()


def get_strategy(driver: str) -> ProvisioningStrategy:
    return STRATEGIES.get(driver, _NOOP)


def provision(descriptor: ConnectionDescriptor, *, engine_factory: EngineFactory = create_db_engine) -> None:
    """Ensure the database (and schema) named by the descriptor exist.

    Safe to call repeatedly. Raises ConfigurationError or ProvisioningError;
    callers treat both as fatal.
    """
    strategy = get_strategy(descriptor.driver)
    logger.info("Provisioning %s (driver=%s, strategy=%s)", descriptor.redacted_url, descriptor.driver, strategy.name)
    strategy.provision(descriptor, engine_factory)
