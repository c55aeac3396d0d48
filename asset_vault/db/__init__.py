"""Database package.

Provisioning creates the database/schema, sync creates and extends tables.
Destructive migrations are out of scope.
"""

from .descriptor import ConnectionDescriptor
from .provisioner import provision
from .session import create_db_engine
from .sync import SchemaSynchronizer, SyncReport

__all__ = ["ConnectionDescriptor", "SchemaSynchronizer", "SyncReport", "create_db_engine", "provision"]
