"""
Schema migration runner.

Migrations are plain .sql files in the migrations directory, applied in
file name order. Each applied file is recorded in schema_migrations under
its version (the file name without ".sql"), so re-running the runner only
executes files it has not seen before.

A migration and its version row are written in the same transaction:
a failing file leaves neither its changes nor its version behind.

Run with: crm-migrate  (or python -m crm.database.migrate)
"""
import sys
from pathlib import Path
from typing import List, Optional, Set, Tuple

from sqlalchemy import insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from crm.core.config import get_settings
from crm.core.exceptions import MigrationError
from crm.core.logging_config import get_logger, setup_logging
from crm.database.connection import DatabaseConnection, close_database, get_database
from crm.database.tables import schema_migrations

logger = get_logger(__name__)


def discover_migrations(migrations_dir: Path) -> List[Tuple[str, Path]]:
    """
    List (version, path) pairs for every .sql file, sorted by file name.

    Raises:
        MigrationError: If the directory does not exist
    """
    if not migrations_dir.is_dir():
        raise MigrationError("-", f"migrations directory not found: {migrations_dir}")
    files = sorted(p for p in migrations_dir.iterdir() if p.is_file() and p.suffix == ".sql")
    return [(p.name[: -len(".sql")], p) for p in files]


def execute_script(conn: Connection, sql: str) -> None:
    """
    Send a whole SQL script to the driver as-is.

    no_parameters keeps the driver from reading '%' in the script as a
    placeholder.
    """
    conn.execution_options(no_parameters=True).exec_driver_sql(sql)


def ensure_migrations_table(db: DatabaseConnection) -> None:
    with db.transaction() as conn:
        schema_migrations.create(conn, checkfirst=True)


def get_executed_versions(db: DatabaseConnection) -> Set[str]:
    rows = db.fetch_all(select(schema_migrations.c.version))
    return {row["version"] for row in rows}


def run_migrations(
    db: Optional[DatabaseConnection] = None,
    migrations_dir: Optional[Path] = None,
) -> List[str]:
    """
    Apply every pending migration.

    Args:
        db: Database to migrate, defaults to the shared pool
        migrations_dir: Directory of .sql files, defaults to settings

    Returns:
        Versions executed by this call, in order (empty when up to date)

    Raises:
        MigrationError: On the first failing migration; later files are not run
    """
    db = db or get_database()
    migrations_dir = migrations_dir or get_settings().migrations_dir

    logger.info(f"Running migrations from {migrations_dir}")
    ensure_migrations_table(db)
    executed = get_executed_versions(db)

    applied: List[str] = []
    for version, path in discover_migrations(migrations_dir):
        if version in executed:
            logger.debug(f"Skipping {version} (already executed)")
            continue

        logger.info(f"Executing migration: {version}")
        sql = path.read_text(encoding="utf-8")
        try:
            with db.transaction() as conn:
                execute_script(conn, sql)
                conn.execute(insert(schema_migrations).values(version=version))
        except SQLAlchemyError as e:
            logger.error(f"Migration {version} failed: {e}")
            raise MigrationError(version, str(e)) from e

        logger.info(f"Completed migration: {version}")
        applied.append(version)

    if applied:
        logger.info(f"Applied {len(applied)} migration(s)")
    else:
        logger.info("Database schema is up to date")
    return applied


def main() -> None:
    """Console entry point: migrate, release the pool, exit 1 on failure."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir, settings.log_to_file)

    exit_code = 0
    try:
        run_migrations()
    except (MigrationError, SQLAlchemyError, OSError) as e:
        logger.error(f"Migration failed: {e}")
        exit_code = 1
    finally:
        close_database()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
