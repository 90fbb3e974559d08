"""
Database migration utilities.
"""
import os

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..logging_config import logger

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "scripts")


def list_migration_files(migrations_dir: str = MIGRATIONS_DIR):
    if not os.path.exists(migrations_dir):
        return []
    return sorted(f for f in os.listdir(migrations_dir) if f.endswith(".sql"))


def run_sql_migrations(engine: Engine, migrations_dir: str = MIGRATIONS_DIR) -> int:
    """
    Run all SQL migration files in the migrations directory.
    
    Migration files should:
    - Be named with a sortable prefix (e.g., 001_initial.sql, 002_add_columns.sql)
    - End with .sql extension
    - Be idempotent (safe to run multiple times)

    Returns:
        Number of migration files executed

    Raises:
        Exception: If any migration fails
    """
    migration_files = list_migration_files(migrations_dir)
    if not migration_files:
        logger.warning("No migration files found", migrations_dir=migrations_dir)
        return 0

    with engine.begin() as conn:
        for filename in migration_files:
            filepath = os.path.join(migrations_dir, filename)
            logger.info("Running migration", filename=filename)

            with open(filepath, "r", encoding="utf-8") as f:
                sql = f.read()

            conn.execute(text(sql))

    logger.info("Migrations completed", count=len(migration_files))
    return len(migration_files)
