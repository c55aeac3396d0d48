"""Asset vault database layer: provisioning, schema sync and query sessions."""

from .core.settings import Settings, load_settings
from .db.runtime import Database, bootstrap
from .services.query_session import FieldAllowList, QuerySession, build_session

__all__ = [
    "Database",
    "FieldAllowList",
    "QuerySession",
    "Settings",
    "bootstrap",
    "build_session",
    "load_settings",
]
