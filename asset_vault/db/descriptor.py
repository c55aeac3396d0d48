"""Connection descriptor: which engine family, which database, which schema."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from asset_vault.core.errors import ConfigurationError
from asset_vault.core.naming import is_safe_identifier
from asset_vault.core.settings import Settings

MYSQL = "mysql"
POSTGRES = "postgres"

_DRIVER_ALIASES = {
    "mysql": MYSQL,
    "mariadb": MYSQL,
    "postgres": POSTGRES,
    "postgresql": POSTGRES,
}

# Administrative database that always exists on a Postgres server.
POSTGRES_ADMIN_DB = "postgres"

_OPTIONS_SEARCH_PATH_RE = re.compile(r"search_path\s*=\s*([^\s,]+)")


def normalize_driver(driver_name: str) -> str:
    name = (driver_name or "").strip().lower()
    # "postgresql+psycopg2" -> "postgresql"
    name = name.split("+", 1)[0]
    return _DRIVER_ALIASES.get(name, name)


def _first(value: Any) -> Optional[str]:
    if isinstance(value, (tuple, list)):
        value = value[0] if value else None
    if value is None:
        return None
    return str(value).strip() or None


def get_param_from_url(url: URL, name: str) -> Optional[str]:
    """Return a query parameter of the URL, also looking inside libpq ``options``.

    ``?search_path=vault`` and ``?options=-csearch_path%3Dvault`` both yield
    ``vault`` for ``name="search_path"``. Only the first element of a
    comma-separated path is returned.
    """
    direct = _first(url.query.get(name))
    if direct:
        return direct.split(",", 1)[0].strip() or None

    options = _first(url.query.get("options"))
    if options and name == "search_path":
        m = _OPTIONS_SEARCH_PATH_RE.search(options)
        if m:
            return m.group(1)
    return None


@dataclass(frozen=True)
class ConnectionDescriptor:
    driver: str
    url: URL
    database: str
    schema: Optional[str] = None

    @classmethod
    def parse(cls, driver_name: str, data_source_name: str, db_name: str = "") -> "ConnectionDescriptor":
        try:
            url = make_url(data_source_name)
        except (ArgumentError, ValueError) as exc:
            raise ConfigurationError(f"Malformed data source name: {exc}") from exc

        driver = normalize_driver(driver_name or url.get_backend_name())
        database = (db_name or url.database or "").strip()
        schema = None

        if driver in (MYSQL, POSTGRES):
            if not is_safe_identifier(database):
                raise ConfigurationError(f"Invalid database name: {database!r}")
            if driver == POSTGRES:
                schema = get_param_from_url(url, "search_path")
                if schema is not None and not is_safe_identifier(schema):
                    raise ConfigurationError(f"Invalid schema name: {schema!r}")
                # search_path is not a libpq keyword; it is applied through connect_args
                url = url.difference_update_query(["search_path"])

        return cls(driver=driver, url=url, database=database, schema=schema)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionDescriptor":
        return cls.parse(settings.driver_name, settings.data_source_name, settings.db_name)

    @property
    def redacted_url(self) -> str:
        return self.target_url().render_as_string(hide_password=True)

    def server_url(self) -> URL:
        """Server-level URL with no database selected (MySQL bootstrap)."""
        return self.url.set(database=None)

    def admin_url(self) -> URL:
        """URL of the administrative database (Postgres bootstrap)."""
        return self.url.set(database=POSTGRES_ADMIN_DB)

    def target_url(self) -> URL:
        if self.driver in (MYSQL, POSTGRES):
            return self.url.set(database=self.database)
        return self.url

    def connect_args(self) -> Dict[str, Any]:
        if self.driver == POSTGRES and self.schema and "options" not in self.url.query:
            return {"options": f"-csearch_path={self.schema}"}
        return {}
