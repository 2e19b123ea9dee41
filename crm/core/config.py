"""
Configuration management via environment variables.

This module loads configuration from the project .env file using python-dotenv.
All configuration values are accessed through the Settings class returned
by get_settings().

Database settings follow the usual precedence:
1. DATABASE_URL if set
2. Otherwise DB_HOST, DB_PORT, DB_NAME, DB_USER and DB_PASSWORD
"""
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load .env file from project root
# This must happen before accessing os.environ
env_path = PROJECT_ROOT / ".env"
load_dotenv(env_path)


# Identity used when no Authorization header is sent in development mode.
# Matches the demo tenant and admin user in seeds/reference_data.sql.
DEFAULT_DEV_TENANT_ID = "11111111-1111-1111-1111-111111111111"
DEFAULT_DEV_USER_ID = "22222222-2222-2222-2222-222222222222"
DEFAULT_DEV_USER_EMAIL = "admin@demo.com"


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    frozen=True keeps settings immutable at runtime.

    Attributes:
        app_name: Application identifier for logging
        app_env: Environment name (development, staging, production)
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for daily log files
        log_to_file: Whether the daily file handler is attached
        database_url: SQLAlchemy connection string
        db_pool_size: Connections kept open in the pool
        db_pool_max_overflow: Extra connections allowed under load
        db_pool_timeout_seconds: Seconds to wait for a free connection
        db_pool_recycle_seconds: Age after which pooled connections are replaced
        api_port: Port used by the crm-api entry point
        cors_origins: Allowed browser origins
        enable_audit_logging: Whether request audit logging is enabled
        migrations_dir: Directory holding ordered .sql migrations
        seed_file: Reference data script
        dev_tenant_id / dev_user_id / dev_user_email: development identity
    """
    # Application settings
    app_name: str
    app_env: str
    log_level: str
    log_dir: Path
    log_to_file: bool

    # Database settings
    database_url: str
    db_pool_size: int
    db_pool_max_overflow: int
    db_pool_timeout_seconds: int
    db_pool_recycle_seconds: int

    # HTTP settings
    api_port: int
    cors_origins: Tuple[str, ...]
    enable_audit_logging: bool

    # Schema management
    migrations_dir: Path
    seed_file: Path

    # Development identity
    dev_tenant_id: str
    dev_user_id: str
    dev_user_email: str

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env.lower() == "development"

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


def _get_env(key: str, default: Optional[str] = None) -> str:
    """
    Get environment variable with optional default.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value

    Raises:
        ValueError: If required variable is not set and no default provided
    """
    value = os.environ.get(key, default)
    if value is None:
        raise ValueError(
            f"Required environment variable '{key}' is not set. "
            f"Please check your .env file."
        )
    return value


def _get_bool(key: str, default: str) -> bool:
    return _get_env(key, default).strip().lower() in ("1", "true", "yes", "on")


def build_database_url() -> str:
    """
    Resolve the database URL from the environment.

    DATABASE_URL wins; otherwise the URL is assembled from the DB_* parts.
    Bare postgres:// URLs are rewritten to use the psycopg2 driver.
    """
    database_url = os.environ.get("DATABASE_URL")

    if not database_url:
        host = _get_env("DB_HOST", "localhost")
        port = _get_env("DB_PORT", "5432")
        name = _get_env("DB_NAME", "crm")
        user = _get_env("DB_USER", "crm_user")
        password = _get_env("DB_PASSWORD", "crm_password")
        database_url = f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"

    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql+psycopg2://", 1)
    elif database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg2://", 1)

    return database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are read once; call get_settings.cache_clear() after changing
    the environment (tests do this).

    Returns:
        Settings instance with all configuration values

    Raises:
        ValueError: If a numeric variable cannot be parsed
    """
    cors_raw = _get_env("CORS_ORIGINS", "http://localhost:3000")
    cors_origins = tuple(origin.strip() for origin in cors_raw.split(",") if origin.strip())

    return Settings(
        # Application
        app_name=_get_env("APP_NAME", "CRMRecordService"),
        app_env=_get_env("APP_ENV", "development"),
        log_level=_get_env("LOG_LEVEL", "INFO"),
        log_dir=Path(_get_env("LOG_DIR", str(PROJECT_ROOT / "logs"))),
        log_to_file=_get_bool("LOG_TO_FILE", "true"),

        # Database
        database_url=build_database_url(),
        db_pool_size=int(_get_env("DB_POOL_SIZE", "20")),
        db_pool_max_overflow=int(_get_env("DB_POOL_MAX_OVERFLOW", "0")),
        db_pool_timeout_seconds=int(_get_env("DB_POOL_TIMEOUT_SECONDS", "2")),
        db_pool_recycle_seconds=int(_get_env("DB_POOL_RECYCLE_SECONDS", "1800")),

        # HTTP
        api_port=int(_get_env("API_PORT", "3001")),
        cors_origins=cors_origins,
        enable_audit_logging=_get_bool("ENABLE_AUDIT_LOGGING", "true"),

        # Schema management
        migrations_dir=Path(_get_env("MIGRATIONS_DIR", str(PROJECT_ROOT / "migrations"))),
        seed_file=Path(_get_env("SEED_FILE", str(PROJECT_ROOT / "seeds" / "reference_data.sql"))),

        # Development identity
        dev_tenant_id=_get_env("DEV_TENANT_ID", DEFAULT_DEV_TENANT_ID),
        dev_user_id=_get_env("DEV_USER_ID", DEFAULT_DEV_USER_ID),
        dev_user_email=_get_env("DEV_USER_EMAIL", DEFAULT_DEV_USER_EMAIL),
    )
