from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateColumn, Table

from asset_vault.core.errors import SyncError

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    created_tables: List[str] = field(default_factory=list)
    added_columns: List[str] = field(default_factory=list)
    created_indexes: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created_tables or self.added_columns or self.created_indexes)


class SchemaSynchronizer:
    """Additive sync of table descriptors against a live database.

    Creates missing tables, adds missing columns and indexes. Existing columns
    are never dropped, retyped or narrowed.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def sync_all(self, tables: Iterable[Table]) -> SyncReport:
        report = SyncReport()
        for table in tables:
            try:
                with self.engine.begin() as conn:
                    self._sync_table(conn, table, report)
            except SQLAlchemyError as exc:
                raise SyncError(f"Failed to sync table {table.name}: {exc}", table=table.name) from exc
        if report.changed:
            logger.info(
                "Schema sync: %d table(s) created, %d column(s) added, %d index(es) created",
                len(report.created_tables),
                len(report.added_columns),
                len(report.created_indexes),
            )
        return report

    def _sync_table(self, conn: Connection, table: Table, report: SyncReport) -> None:
        inspector = inspect(conn)
        if not inspector.has_table(table.name, schema=table.schema):
            table.create(conn)
            logger.info("Created table %s", table.name)
            report.created_tables.append(table.name)
            return

        existing_columns = {c["name"] for c in inspector.get_columns(table.name, schema=table.schema)}
        qualified = conn.dialect.identifier_preparer.format_table(table)
        for column in table.columns:
            if column.name in existing_columns:
                continue
            ddl = CreateColumn(column).compile(dialect=conn.dialect)
            logger.info("Adding column %s.%s", table.name, column.name)
            conn.execute(text(f"ALTER TABLE {qualified} ADD COLUMN {ddl}"))
            report.added_columns.append(f"{table.name}.{column.name}")

        existing_indexes = {ix["name"] for ix in inspector.get_indexes(table.name, schema=table.schema)}
        for index in table.indexes:
            if index.name in existing_indexes:
                continue
            logger.info("Creating index %s on %s", index.name, table.name)
            index.create(conn)
            report.created_indexes.append(str(index.name))
