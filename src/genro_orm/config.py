# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Store configuration and environment loading.

Configuration via environment variables:
    GENRO_ORM_DB: Connection string (SQLite file or PostgreSQL URL)
    GENRO_ORM_MAX_CONNECTIONS: Maximum pooled connections (default: 10)
    GENRO_ORM_CONNECT_TIMEOUT: PostgreSQL pool open timeout in seconds (default: 10)
    GENRO_ORM_LOG_LEVEL: Log level used by the gorm CLI (default: WARNING)

Usage:
    # From environment (Docker/production):
    store = Store.from_config(config_from_env())

    # Explicit configuration:
    store = Store.from_config(OrmConfig(db_path="/data/app.db", max_connections=4))
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class OrmConfig:
    """Configuration of a Store.

    Attributes:
        db_path: Connection string: SQLite path or PostgreSQL URL.
        max_connections: Maximum number of connections checked out at once.
        connect_timeout: Seconds to wait for the PostgreSQL pool to open.
        log_level: Log level name used by the CLI logging setup.
    """

    db_path: str = "/data/orm.db"
    max_connections: int = 10
    connect_timeout: float = 10.0
    log_level: str = "WARNING"


def config_from_env() -> OrmConfig:
    """Build OrmConfig from GENRO_ORM_* environment variables.

    Returns:
        OrmConfig instance populated from environment.
    """
    return OrmConfig(
        db_path=os.environ.get("GENRO_ORM_DB", "/data/orm.db"),
        max_connections=int(os.environ.get("GENRO_ORM_MAX_CONNECTIONS", "10")),
        connect_timeout=float(os.environ.get("GENRO_ORM_CONNECT_TIMEOUT", "10")),
        log_level=os.environ.get("GENRO_ORM_LOG_LEVEL", "WARNING").upper(),
    )


__all__ = ["OrmConfig", "config_from_env"]
