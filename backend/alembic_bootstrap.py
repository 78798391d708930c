#!/usr/bin/env python3
"""Alembic bootstrap for databases created by init_db()/seed_data.py.

If the schema already exists but alembic_version is missing, stamp the
initial revision before normal upgrades.
"""

from __future__ import annotations

import logging
import os
import subprocess

from sqlalchemy import inspect

from compliance_hub.database import engine

logger = logging.getLogger(__name__)

BASELINE_REVISION = os.getenv("ALEMBIC_BASELINE_REVISION", "001")
SCHEMA_TABLES = ("organizations", "users", "tasks", "audit_logs")


def main() -> int:
    inspector = inspect(engine)
    has_alembic_version = inspector.has_table("alembic_version")
    has_schema = any(inspector.has_table(table) for table in SCHEMA_TABLES)

    if not has_alembic_version and has_schema:
        logger.info("Existing schema detected without alembic_version; stamping %s", BASELINE_REVISION)
        subprocess.run(["alembic", "stamp", BASELINE_REVISION], check=True)
    else:
        logger.info("Alembic bootstrap check: no baseline stamp required")

    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
