# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for config module."""

from __future__ import annotations

from genro_orm.config import OrmConfig, config_from_env
from genro_orm.sql.adapters import SqliteAdapter
from genro_orm.store import Store

ENV_VARS = (
    "GENRO_ORM_DB",
    "GENRO_ORM_MAX_CONNECTIONS",
    "GENRO_ORM_CONNECT_TIMEOUT",
    "GENRO_ORM_LOG_LEVEL",
)


class TestOrmConfig:
    """Tests for OrmConfig dataclass."""

    def test_default_values(self):
        """Default values should be set correctly."""
        config = OrmConfig()
        assert config.db_path == "/data/orm.db"
        assert config.max_connections == 10
        assert config.connect_timeout == 10.0
        assert config.log_level == "WARNING"


class TestConfigFromEnv:
    """Tests for config_from_env() function."""

    def test_default_values_when_no_env(self, monkeypatch):
        """Should use defaults when no env vars set."""
        for name in ENV_VARS:
            monkeypatch.delenv(name, raising=False)

        assert config_from_env() == OrmConfig()

    def test_reads_env_vars(self, monkeypatch):
        """Each GENRO_ORM_* variable overrides its field."""
        monkeypatch.setenv("GENRO_ORM_DB", "postgresql://u:p@db/app")
        monkeypatch.setenv("GENRO_ORM_MAX_CONNECTIONS", "4")
        monkeypatch.setenv("GENRO_ORM_CONNECT_TIMEOUT", "2.5")
        monkeypatch.setenv("GENRO_ORM_LOG_LEVEL", "debug")

        config = config_from_env()

        assert config.db_path == "postgresql://u:p@db/app"
        assert config.max_connections == 4
        assert config.connect_timeout == 2.5
        assert config.log_level == "DEBUG"


class TestStoreFromConfig:
    """Tests for Store.from_config()."""

    def test_builds_sqlite_store(self, db_path):
        """The connection string and pool size reach the adapter."""
        store = Store.from_config(OrmConfig(db_path=db_path, max_connections=3))
        assert isinstance(store.adapter, SqliteAdapter)
        assert store.adapter.db_path == db_path
        assert store.adapter.max_connections == 3
