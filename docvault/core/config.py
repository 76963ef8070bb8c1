"""
Configuration management via environment variables.

This module loads configuration from the project's .env file using python-dotenv.
All configuration values are accessed through the Settings class.
"""
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Load .env file from project root
# This must happen before accessing os.environ
_PROJECT_ROOT = Path(__file__).parent.parent.parent
env_path = _PROJECT_ROOT / ".env"
load_dotenv(env_path)


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Application identifier, used as the log file prefix
        log_level: Console logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the daily application and store event logs
        database_url: SQLAlchemy connection string for the durable backend
        storage_durable: Use the database-backed store (False = memory only)
        store_failure_threshold: Consecutive durable failures before the
            store stops attempting the database
        store_retry_cooldown_seconds: Pause before probing the database again
        seed_default_user: Create the default user during bootstrap
        default_username: Username of the seeded user
        default_password: Password of the seeded user
    """
    # Application settings
    app_name: str
    log_level: str
    log_dir: str

    # Database settings
    database_url: str

    # Storage settings
    storage_durable: bool
    store_failure_threshold: int
    store_retry_cooldown_seconds: float

    # Bootstrap settings
    seed_default_user: bool
    default_username: str
    default_password: str


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


def normalize_database_url(database_url: str) -> str:
    """
    Rewrite a connection URL into a form SQLAlchemy accepts.

    Hosted providers hand out ``postgres://`` and ``mysql://`` URLs and
    sometimes append ``ssl-mode``, which the pymysql driver rejects.
    """
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    if database_url.startswith("mysql://"):
        database_url = database_url.replace("mysql://", "mysql+pymysql://", 1)

    if "ssl-mode=" in database_url:
        database_url = re.sub(r"[?&]ssl-mode=[^&]+", "", database_url)
        if "?" not in database_url and "&" in database_url:
            database_url = database_url.replace("&", "?", 1)

    return database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Database URL priority:
    1. DATABASE_URL
    2. Local components (DB_HOST, DB_USER, ...) composed into a MySQL URL

    Returns:
        Settings instance with all configuration values
    """
    database_url = os.environ.get("DATABASE_URL")

    if not database_url:
        host = _get_env("DB_HOST", "localhost")
        port = _get_env("DB_PORT", "3306")
        user = _get_env("DB_USER", "root")
        password = _get_env("DB_PASSWORD", "")
        name = _get_env("DB_NAME", "docvault")
        database_url = f"mysql+pymysql://{user}:{password}@{host}:{port}/{name}"

    return Settings(
        # Application
        app_name=_get_env("APP_NAME", "DocVault"),
        log_level=_get_env("LOG_LEVEL", "INFO"),
        log_dir=_get_env("LOG_DIR", str(_PROJECT_ROOT / "logs")),

        # Database
        database_url=normalize_database_url(database_url),

        # Storage
        storage_durable=_get_bool("STORAGE_DURABLE", "true"),
        store_failure_threshold=int(_get_env("STORE_FAILURE_THRESHOLD", "3")),
        store_retry_cooldown_seconds=float(_get_env("STORE_RETRY_COOLDOWN_SECONDS", "30")),

        # Bootstrap
        seed_default_user=_get_bool("SEED_DEFAULT_USER", "true"),
        default_username=_get_env("DEFAULT_USERNAME", "user@example.com"),
        default_password=_get_env("DEFAULT_PASSWORD", "password123"),
    )
