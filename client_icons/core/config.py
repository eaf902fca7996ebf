# client_icons/core/config.py

"""
Application configuration management.

Loads settings from environment variables with sensible defaults.
Provides database, logging and auto-assignment configuration.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

from .constants import Limits
from .exceptions import InvalidConfigError

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class PathConfig:
    """File and directory path configuration."""

    # Project root
    PROJECT_ROOT = Path(__file__).parent.parent.parent

    # Data directories
    DATA_DIR = PROJECT_ROOT / "db_files"
    RULES_DIR = DATA_DIR / "rules"

    # CSV file paths
    ICON_RULES_CSV_PATH = os.getenv(
        "ICON_RULES_CSV_PATH",
        str(RULES_DIR / "icon_rules.csv")
    )


class DatabaseConfig:
    """Database connection and settings."""

    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "sqlite:///client_icons.db"
    )

    # Database engine options
    ECHO_SQL = _env_bool("DB_ECHO")
    POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
    MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))

    @classmethod
    def get_engine_options(cls, database_url: str = None) -> dict:
        """Get SQLAlchemy engine options."""
        url = database_url or cls.DATABASE_URL
        options = {
            "echo": cls.ECHO_SQL,
            "future": True,
        }

        # Only add pooling options for non-SQLite databases
        if url.startswith("sqlite"):
            # Background walks use their own sessions on worker threads
            options["connect_args"] = {"check_same_thread": False}
        else:
            options.update({
                "pool_size": cls.POOL_SIZE,
                "max_overflow": cls.MAX_OVERFLOW,
                "pool_pre_ping": True,
            })

        return options


class AppConfig:
    """Application-level configuration."""

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    VERBOSE = _env_bool("VERBOSE")


class AutoAssignConfig:
    """Icon auto-assignment engine configuration."""

    # Clients per page during a bulk walk
    BATCH_SIZE = int(os.getenv("AUTO_ASSIGN_BATCH_SIZE", str(Limits.DEFAULT_BATCH_SIZE)))

    # 0 means no limit
    MAX_BATCHES = int(os.getenv("AUTO_ASSIGN_MAX_BATCHES", "0"))

    # Nesting guard for user-authored condition trees
    MAX_CONDITION_DEPTH = int(os.getenv("AUTO_ASSIGN_MAX_CONDITION_DEPTH", str(Limits.DEFAULT_MAX_CONDITION_DEPTH)))

    # Background pool for bulk walks
    WORKER_THREADS = int(os.getenv("AUTO_ASSIGN_WORKER_THREADS", str(Limits.DEFAULT_WORKER_THREADS)))

    @classmethod
    def validate(cls):
        """Validate auto-assignment settings."""
        if cls.BATCH_SIZE < 1:
            raise InvalidConfigError(
                f"AUTO_ASSIGN_BATCH_SIZE must be positive, got {cls.BATCH_SIZE}",
                {"config_name": "AUTO_ASSIGN_BATCH_SIZE", "value": cls.BATCH_SIZE},
            )
        if cls.MAX_BATCHES < 0:
            raise InvalidConfigError(
                f"AUTO_ASSIGN_MAX_BATCHES cannot be negative, got {cls.MAX_BATCHES}",
                {"config_name": "AUTO_ASSIGN_MAX_BATCHES", "value": cls.MAX_BATCHES},
            )
        if cls.MAX_CONDITION_DEPTH < 1:
            raise InvalidConfigError(
                "AUTO_ASSIGN_MAX_CONDITION_DEPTH must be positive",
                {"config_name": "AUTO_ASSIGN_MAX_CONDITION_DEPTH", "value": cls.MAX_CONDITION_DEPTH},
            )
        if cls.WORKER_THREADS < 1:
            raise InvalidConfigError(
                "AUTO_ASSIGN_WORKER_THREADS must be at least 1",
                {"config_name": "AUTO_ASSIGN_WORKER_THREADS", "value": cls.WORKER_THREADS},
            )


class Config:
    """
    Unified configuration class combining all config sections.

    Usage:
        from client_icons.core.config import Config

        db_url = Config.database.DATABASE_URL
        batch_size = Config.auto_assign.BATCH_SIZE
        log_level = Config.app.LOG_LEVEL
    """

    paths = PathConfig
    database = DatabaseConfig
    app = AppConfig
    auto_assign = AutoAssignConfig

    @classmethod
    def validate(cls):
        """Validate settings before the engine is wired up."""
        cls.auto_assign.validate()

    @classmethod
    def summary(cls) -> str:
        """Get configuration summary for logging."""
        return f"""
Configuration Summary:
  Database: {cls.database.DATABASE_URL}
  Log Level: {cls.app.LOG_LEVEL}
  Batch Size: {cls.auto_assign.BATCH_SIZE}
  Max Batches: {cls.auto_assign.MAX_BATCHES or 'unlimited'}
  Max Condition Depth: {cls.auto_assign.MAX_CONDITION_DEPTH}
  Worker Threads: {cls.auto_assign.WORKER_THREADS}
        """.strip()
