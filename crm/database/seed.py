"""
Reference data loader.

Executes the seed script (demo tenant, users, standard pricebook, sample
records, approval process, tracked fields) in one transaction. The script
uses ON CONFLICT DO NOTHING, so seeding twice is harmless.

Run with: crm-seed  (or python -m crm.database.seed)
"""
import sys
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from crm.core.config import get_settings
from crm.core.exceptions import MigrationError
from crm.core.logging_config import get_logger, setup_logging
from crm.database.connection import DatabaseConnection, close_database, get_database
from crm.database.migrate import execute_script

logger = get_logger(__name__)


def run_seed(db: Optional[DatabaseConnection] = None, seed_file: Optional[Path] = None) -> None:
    """
    Load the seed script.

    Raises:
        MigrationError: If the file is missing or any statement fails
    """
    db = db or get_database()
    seed_file = seed_file or get_settings().seed_file

    if not seed_file.is_file():
        raise MigrationError("seed", f"seed file not found: {seed_file}")

    logger.info(f"Seeding database from {seed_file.name}")
    try:
        with db.transaction() as conn:
            execute_script(conn, seed_file.read_text(encoding="utf-8"))
    except SQLAlchemyError as e:
        raise MigrationError("seed", str(e)) from e
    logger.info("Seed data loaded")


def main() -> None:
    """Console entry point: seed, release the pool, exit 1 on failure."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir, settings.log_to_file)

    exit_code = 0
    try:
        run_seed()
    except (MigrationError, SQLAlchemyError, OSError) as e:
        logger.error(f"Seeding failed: {e}")
        exit_code = 1
    finally:
        close_database()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
