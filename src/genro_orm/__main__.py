# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""CLI entry point for genro-orm (gorm command).

Usage:
    gorm --help
    gorm --db /data/app.db tables
    python -m genro_orm query "SELECT * FROM person"
"""

from .cli import main

if __name__ == "__main__":
    main()
