from __future__ import annotations

import pytest

from asset_vault.core.errors import ConfigurationError
from asset_vault.core.settings import Settings
from asset_vault.db.descriptor import ConnectionDescriptor, normalize_driver


@pytest.mark.parametrize(
    "name,expected",
    [
        ("mysql", "mysql"),
        ("MariaDB", "mysql"),
        ("postgres", "postgres"),
        ("postgresql+psycopg2", "postgres"),
        ("sqlite", "sqlite"),
        ("", ""),
    ],
)
def test_normalize_driver(name, expected):
    assert normalize_driver(name) == expected


def test_driver_defaults_to_url_backend():
    d = ConnectionDescriptor.parse("", "postgresql+psycopg2://u:p@h:5432/casvisor", "")
    assert d.driver == "postgres"
    assert d.database == "casvisor"


def test_mysql_target_url_names_the_database():
    d = ConnectionDescriptor.parse("mysql", "mysql+pymysql://u:p@h:3306/", "casvisor")
    assert d.server_url().database is None
    assert d.target_url().database == "casvisor"
    assert d.connect_args() == {}


def test_postgres_search_path_becomes_schema():
    d = ConnectionDescriptor.parse("postgres", "postgresql+psycopg2://u:p@h:5432/casvisor?search_path=vault&sslmode=disable", "casvisor")
    assert d.schema == "vault"
    assert "search_path" not in d.url.query
    assert d.url.query["sslmode"] == "disable"
    assert d.admin_url().database == "postgres"
    assert d.target_url().database == "casvisor"
    assert d.connect_args() == {"options": "-csearch_path=vault"}


def test_postgres_schema_from_libpq_options():
    d = ConnectionDescriptor.parse("postgres", "postgresql://u:p@h/casvisor?options=-csearch_path%3Dvault", "casvisor")
    assert d.schema == "vault"
    # options already carries the search path
    assert d.connect_args() == {}


def test_postgres_without_schema():
    d = ConnectionDescriptor.parse("postgres", "postgresql://u:p@h/casvisor", "casvisor")
    assert d.schema is None
    assert d.connect_args() == {}


def test_db_name_overrides_url_database():
    d = ConnectionDescriptor.parse("postgres", "postgresql://u:p@h/other", "casvisor")
    assert d.target_url().database == "casvisor"


def test_redacted_url_hides_password():
    d = ConnectionDescriptor.parse("mysql", "mysql+pymysql://u:topsecret@h:3306/", "casvisor")
    assert "topsecret" not in d.redacted_url
    assert "casvisor" in d.redacted_url


def test_sqlite_url_is_used_as_is():
    d = ConnectionDescriptor.from_settings(Settings(driver_name="sqlite", data_source_name="sqlite:///./vault.db", db_name="casvisor"))
    assert d.driver == "sqlite"
    assert d.target_url().database == "./vault.db"


@pytest.mark.parametrize(
    "driver,dsn,db_name",
    [
        ("mysql", "mysql+pymysql://u:p@h:3306/", "casvisor; DROP DATABASE x"),
        ("postgres", "postgresql://u:p@h/casvisor", "bad-name"),
        ("postgres", "postgresql://u:p@h/casvisor?search_path=vault;drop", "casvisor"),
        ("mysql", "mysql+pymysql://u:p@h:3306/", ""),
    ],
)
def test_unsafe_identifiers_are_rejected(driver, dsn, db_name):
    with pytest.raises(ConfigurationError):
        ConnectionDescriptor.parse(driver, dsn, db_name)


def test_malformed_url_is_configuration_error():
    with pytest.raises(ConfigurationError, match="Malformed"):
        ConnectionDescriptor.parse("postgres", "not a url", "casvisor")
