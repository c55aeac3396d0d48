"""Query session builder: untyped request parameters -> parameterized SELECT.

Invariants:
    - Request values only ever reach SQL as bound parameters.
    - A field name reaches SQL as an identifier only after FieldAllowList has
      accepted it and mapped it to its storage column name.
    - Building a session never raises; an unacceptable field drops its clause.
    - A clause naming a column the queried table lacks is dropped when the
      session is bound to that table; the sort falls back to created_time.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.schema import Table

from asset_vault.core.errors import FilterRejected
from asset_vault.core.naming import is_safe_field, snake_string

logger = logging.getLogger(__name__)

DEFAULT_SORT_FIELD = "created_time"
ASCEND = "ascend"
NO_PAGINATION = -1


class FieldAllowList:
    """Maps request field names to validated column names.

    With no known columns only the identifier check applies; built from tables,
    the mapped name must also be one of their columns.
    """

    def __init__(self, columns: Optional[Iterable[str]] = None):
        self._columns = frozenset(columns) if columns is not None else None

    @classmethod
    def from_tables(cls, tables: Iterable[Table]) -> "FieldAllowList":
        names = {c.name for table in tables for c in table.columns}
        return cls(names or None)

    def validate(self, field: str) -> str:
        if not is_safe_field(field):
            raise FilterRejected(field)
        name = snake_string(field)
        if self._columns is not None and name not in self._columns:
            raise FilterRejected(field)
        return name

    def resolve(self, field: str) -> Optional[str]:
        try:
            return self.validate(field)
        except FilterRejected as e:
            logger.debug("Dropping query clause: %s", e)
            return None


def _col(table: Table, name: str) -> Optional[ColumnElement]:
    if name in table.c:
        return table.c[name]
    logger.debug("Dropping query clause: %s has no column %s", table.name, name)
    return None


@dataclass(frozen=True)
class QuerySession:
    """Composable, not yet executed query.

    Each ``where_*``/``order``/``paginate`` call returns a new session. The
    session is table-agnostic until ``select_for``/``all``/``count`` bind it to
    a table.
    """

    engine: Optional[Engine] = dataclasses.field(default=None, compare=False, repr=False)
    # Keeps the owning Database handle reachable while the session is in use.
    database: Any = dataclasses.field(default=None, compare=False, repr=False)
    owner: Optional[str] = None
    like: Optional[Tuple[str, str]] = None
    sort_column: str = DEFAULT_SORT_FIELD
    ascending: bool = False
    limit: Optional[int] = None
    offset: Optional[int] = None

    def where_owner(self, owner: str) -> "QuerySession":
        return dataclasses.replace(self, owner=owner)

    def where_like(self, column_name: str, value: str) -> "QuerySession":
        return dataclasses.replace(self, like=(column_name, f"%{value}%"))

    def order(self, column_name: str, ascending: bool) -> "QuerySession":
        return dataclasses.replace(self, sort_column=column_name, ascending=ascending)

    def paginate(self, limit: int, offset: int) -> "QuerySession":
        return dataclasses.replace(self, limit=limit, offset=offset)

    @property
    def paginated(self) -> bool:
        return self.limit is not None

    def where_clauses(self, table: Table) -> List[ColumnElement]:
        clauses: List[ColumnElement] = []
        if self.owner is not None:
            clauses.append(table.c["owner"] == self.owner)
        if self.like is not None:
            name, pattern = self.like
            col = _col(table, name)
            if col is not None:
                clauses.append(col.like(pattern))
        return clauses

    def select_for(self, table: Table) -> Select:
        sort = _col(table, self.sort_column)
        if sort is None and self.sort_column != DEFAULT_SORT_FIELD:
            sort = _col(table, DEFAULT_SORT_FIELD)
        stmt = select(table).where(*self.where_clauses(table))
        if sort is not None:
            stmt = stmt.order_by(sort.asc() if self.ascending else sort.desc())
        if self.paginated:
            stmt = stmt.limit(self.limit).offset(self.offset)
        return stmt

    def count_for(self, table: Table) -> Select:
        # Total for pagination: filters only, no ordering or LIMIT.
        return select(func.count()).select_from(table).where(*self.where_clauses(table))

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("QuerySession is not bound to an engine")
        return self.engine

    def all(self, table: Table) -> List[Dict[str, Any]]:
        with self._require_engine().connect() as conn:
            return [dict(row) for row in conn.execute(self.select_for(table)).mappings()]

    def first(self, table: Table) -> Optional[Dict[str, Any]]:
        with self._require_engine().connect() as conn:
            row = conn.execute(self.select_for(table).limit(1)).mappings().first()
            return dict(row) if row is not None else None

    def count(self, table: Table) -> int:
        with self._require_engine().connect() as conn:
            return int(conn.execute(self.count_for(table)).scalar_one())


def build_session(
    engine: Optional[Engine],
    owner: str = "",
    offset: int = NO_PAGINATION,
    limit: int = NO_PAGINATION,
    field: str = "",
    value: str = "",
    sort_field: str = "",
    sort_order: str = "",
    *,
    allow_list: Optional[FieldAllowList] = None,
) -> QuerySession:
    """Build a filtered, sorted, optionally paginated session.

    No upper bound is put on ``limit``; capping page size belongs to the caller.
    """
    allow_list = allow_list or FieldAllowList()
    session = QuerySession(engine=engine)

    if offset != NO_PAGINATION and limit != NO_PAGINATION:
        session = session.paginate(limit, offset)

    if owner:
        session = session.where_owner(owner)

    if field and value:
        name = allow_list.resolve(field)
        if name is not None:
            session = session.where_like(name, value)

    sort_column = allow_list.resolve(sort_field) if sort_field else None
    session = session.order(sort_column or DEFAULT_SORT_FIELD, sort_order == ASCEND)
    return session
