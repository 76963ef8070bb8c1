"""
Centralized logging configuration.

Log messages carry a bracketed component tag ([MEMORY], [DURABLE],
[STORE], [CHUNKER]). Everything goes to the console and to a daily
application log. Records tagged [STORE] are also copied to a daily store
event log, so every fallback, divergence and recovery of the resilient
store can be audited on its own.

Directory, level and file prefix come from Settings.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from docvault.core.config import Settings, get_settings


STORE_TAG = "[STORE]"

# Module-level flag to prevent duplicate handler registration
_logging_configured = False


class TagFilter(logging.Filter):
    """Pass only records whose message starts with one of the given tags."""

    def __init__(self, tags: Iterable[str]):
        super().__init__()
        self.tags = tuple(tags)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().startswith(self.tags)


def setup_logging(settings: Optional[Settings] = None, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure application-wide logging.

    Called once at startup by ``get_store()`` and the table setup script.
    Later calls are no-ops.

    Args:
        settings: Source of LOG_LEVEL, LOG_DIR and APP_NAME. Defaults to
                  the cached process settings.
        log_dir: Overrides the LOG_DIR setting

    Returns:
        Configured root logger instance

    Example:
        >>> logger = setup_logging()
        >>> logger.info("[STORE] Store initialized")
    """
    global _logging_configured

    if _logging_configured:
        return logging.getLogger()

    settings = settings or get_settings()
    log_dir = Path(log_dir or settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Format: timestamp | level | module:line | message
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(getattr(logging, settings.log_level.upper()))

    prefix = settings.app_name.lower()
    day = datetime.now().strftime("%Y%m%d")

    log_file = log_dir / f"{prefix}_{day}.log"
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)

    store_log_file = log_dir / f"{prefix}_store_{day}.log"
    store_handler = logging.FileHandler(store_log_file, encoding="utf-8")
    store_handler.setFormatter(formatter)
    store_handler.setLevel(logging.INFO)
    store_handler.addFilter(TagFilter([STORE_TAG]))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(store_handler)

    # SQLAlchemy echoes every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

    _logging_configured = True

    root_logger.debug(
        f"Logging configured: level={settings.log_level}, file={log_file}, "
        f"store events={store_log_file}"
    )

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, typically ``get_logger(__name__)``."""
    return logging.getLogger(name)


class LoggerMixin:
    """Adds a ``self.logger`` named after the class."""

    @property
    def logger(self) -> logging.Logger:
        return get_logger(self.__class__.__name__)
