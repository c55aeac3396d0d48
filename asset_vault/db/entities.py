from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, MetaData, String, Table, Text

from asset_vault.core.naming import table_name

# Declaration order is sync order.
ENTITY_NAMES = ("Dataset", "Record", "Asset")


def build_metadata(prefix: str = "") -> MetaData:
    """Entity descriptors for the policy/asset backend.

    Table names follow the storage naming convention: ``prefix + snake_case(entity)``.
    created_time holds an RFC 3339 string, as written by the API layer.
    """
    metadata = MetaData()

    Table(
        table_name(prefix, "Dataset"),
        metadata,
        Column("owner", String(100), primary_key=True),
        Column("name", String(100), primary_key=True),
        Column("created_time", String(100)),
        Column("display_name", String(100)),
        Column("description", String(100)),
        Column("start_date", String(100)),
        Column("end_date", String(100)),
    )

    Table(
        table_name(prefix, "Record"),
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("owner", String(100), index=True),
        Column("name", String(100), index=True),
        Column("created_time", String(100)),
        Column("organization", String(100)),
        Column("client_ip", String(100)),
        Column("user", String(100)),
        Column("method", String(100)),
        Column("request_uri", String(1000)),
        Column("action", String(1000)),
        Column("response", Text),
        Column("is_triggered", Boolean),
    )

    Table(
        table_name(prefix, "Asset"),
        metadata,
        Column("owner", String(100), primary_key=True),
        Column("name", String(100), primary_key=True),
        Column("created_time", String(100)),
        Column("display_name", String(100)),
        Column("description", String(100)),
        Column("category", String(100)),
        Column("type", String(100)),
        Column("tag", String(100)),
        Column("endpoint", String(100)),
        Column("port", Integer),
        Column("username", String(100)),
        Column("os", String(100)),
        Column("is_permanent", Boolean),
    )

    return metadata
