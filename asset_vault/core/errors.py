from __future__ import annotations

from typing import Optional


class AssetVaultError(RuntimeError):
    pass


class ConfigurationError(AssetVaultError):
    """Connection target is malformed, unreachable or names an unsafe identifier."""


class ProvisioningError(AssetVaultError):
    """Creating the database or schema failed for a reason other than "already exists"."""


class SyncError(AssetVaultError):
    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.table = table


class FilterRejected(ValueError):
    """A request field name is not a recognised column.

    Raised by FieldAllowList.validate; the query builder drops the filter instead
    of passing this on to request handlers.
    """

    def __init__(self, field: str):
        super().__init__(f"Field not allowed: {field!r}")
        self.field = field
