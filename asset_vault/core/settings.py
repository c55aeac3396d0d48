from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from asset_vault.core.errors import ConfigurationError


def _env_bool(key: str, default: str = "1") -> bool:
    return os.getenv(key, default).strip().lower() not in ("0", "false", "no", "off")


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("0", "false", "no", "off", "")


@dataclass(frozen=True, slots=True)
class Settings:
    # Database target. driver_name may be left empty, in which case it is taken
    # from the backend name of data_source_name.
    driver_name: str = field(default_factory=lambda: os.getenv("DRIVER_NAME", "").strip())
    data_source_name: str = field(default_factory=lambda: os.getenv("DATA_SOURCE_NAME", "sqlite:///./asset_vault.db").strip())
    db_name: str = field(default_factory=lambda: os.getenv("DB_NAME", "asset_vault").strip())

    # Storage naming convention: physical table name = prefix + snake_case(entity)
    table_name_prefix: str = field(default_factory=lambda: os.getenv("TABLE_NAME_PREFIX", "").strip())

    db_echo: bool = field(default_factory=lambda: _env_bool("DB_ECHO", "0"))
    # Run additive table sync after provisioning.
    auto_sync_tables: bool = field(default_factory=lambda: _env_bool("AUTO_SYNC_TABLES", "1"))


_BOOL_FIELDS = {"db_echo", "auto_sync_tables"}


def load_settings(path: Optional[str] = None) -> Settings:
    """Build Settings from the environment, overlaid with an optional YAML file.

    The file holds the same keys as the Settings fields, e.g.::

        driver_name: postgres
        data_source_name: postgresql+psycopg2://app:secret@db:5432/casvisor?search_path=vault
        db_name: casvisor
    """
    base = Settings()
    if not path:
        return base

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")

    known = {f.name for f in dataclasses.fields(Settings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigurationError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")

    overrides: Dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        overrides[key] = _coerce_bool(value) if key in _BOOL_FIELDS else str(value).strip()
    return dataclasses.replace(base, **overrides)
