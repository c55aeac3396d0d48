"""Process-wide database handle: provision, open, sync, shutdown.

Invariants:
    - bootstrap() runs provisioning and sync sequentially and returns only when
      the target is fully ready; nothing serves requests before that.
    - The engine is disposed exactly once: by shutdown(), or by the garbage
      collection safety net if shutdown() was never called.
    - Sessions from Database.session() hold the handle, so the safety net
      cannot dispose the engine while one of them is still in use.
"""

from __future__ import annotations

import dataclasses
import logging
import weakref
from typing import Iterable, Optional

from sqlalchemy import MetaData, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, DBAPIError, SQLAlchemyError
from sqlalchemy.schema import Table

from asset_vault.core.errors import ConfigurationError
from asset_vault.core.naming import table_name
from asset_vault.core.settings import Settings
from asset_vault.db.descriptor import ConnectionDescriptor
from asset_vault.db.entities import build_metadata
from asset_vault.db.provisioner import EngineFactory, provision
from asset_vault.db.session import create_db_engine
from asset_vault.db.sync import SchemaSynchronizer
from asset_vault.services.query_session import FieldAllowList, QuerySession, build_session

logger = logging.getLogger(__name__)


def _finalize_engine(engine: Engine, redacted_url: str) -> None:
    logger.warning("Database handle for %s was not shut down; disposing engine from finalizer", redacted_url)
    engine.dispose()


class Database:
    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        engine: Engine,
        metadata: Optional[MetaData] = None,
        table_name_prefix: str = "",
    ):
        self.descriptor = descriptor
        self.engine = engine
        self.metadata = metadata if metadata is not None else MetaData()
        self.table_name_prefix = table_name_prefix
        self.allow_list = FieldAllowList.from_tables(self.metadata.tables.values())
        self._finalizer = weakref.finalize(self, _finalize_engine, engine, descriptor.redacted_url)

    @classmethod
    def open(
        cls,
        descriptor: ConnectionDescriptor,
        *,
        echo: bool = False,
        metadata: Optional[MetaData] = None,
        table_name_prefix: str = "",
        engine_factory: EngineFactory = create_db_engine,
    ) -> "Database":
        """Open the long-lived engine against the fully-qualified target and check it."""
        try:
            engine = engine_factory(descriptor.target_url(), echo=echo, connect_args=descriptor.connect_args())
        except (ArgumentError, ImportError) as exc:
            raise ConfigurationError(f"Cannot create engine for {descriptor.redacted_url}: {exc}") from exc

        try:
            with engine.connect():
                pass
        except DBAPIError as exc:
            engine.dispose()
            raise ConfigurationError(f"Cannot connect to {descriptor.redacted_url}: {exc}") from exc

        logger.info("Opened database %s", descriptor.redacted_url)
        return cls(descriptor, engine, metadata=metadata, table_name_prefix=table_name_prefix)

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def table(self, entity: str) -> Table:
        return self.metadata.tables[table_name(self.table_name_prefix, entity)]

    def sync(self, tables: Optional[Iterable[Table]] = None):
        tables = list(self.metadata.tables.values()) if tables is None else list(tables)
        return SchemaSynchronizer(self.engine).sync_all(tables)

    def session(
        self,
        owner: str = "",
        offset: int = -1,
        limit: int = -1,
        field: str = "",
        value: str = "",
        sort_field: str = "",
        sort_order: str = "",
    ) -> QuerySession:
        session = build_session(
            self.engine,
            owner,
            offset,
            limit,
            field,
            value,
            sort_field,
            sort_order,
            allow_list=self.allow_list,
        )
        return dataclasses.replace(session, database=self)

    def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("DB health check failed: %s", e)
            return False

    def shutdown(self) -> None:
        if self._finalizer.detach() is None:
            return
        self.engine.dispose()
        logger.info("Database %s shut down", self.descriptor.redacted_url)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


def bootstrap(
    settings: Settings,
    *,
    metadata: Optional[MetaData] = None,
    engine_factory: EngineFactory = create_db_engine,
) -> Database:
    """Provision the target, open the long-lived engine and sync the tables.

    Any failure is raised to the caller, which must not go on serving.
    """
    descriptor = ConnectionDescriptor.from_settings(settings)
    provision(descriptor, engine_factory=engine_factory)

    if metadata is None:
        metadata = build_metadata(settings.table_name_prefix)
    db = Database.open(
        descriptor,
        echo=settings.db_echo,
        metadata=metadata,
        table_name_prefix=settings.table_name_prefix,
        engine_factory=engine_factory,
    )
    if settings.auto_sync_tables:
        try:
            db.sync()
        except Exception:
            db.shutdown()
            raise
    return db
