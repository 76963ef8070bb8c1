"""
Core module - Configuration and cross-cutting concerns.

This module provides:
- config.py         : Environment-based configuration management
- logging_config.py : Centralized logging setup
- exceptions.py     : Error hierarchy
"""
from docvault.core.config import get_settings, Settings
from docvault.core.logging_config import setup_logging, get_logger, LoggerMixin
from docvault.core.exceptions import (
    StoreError,
    BackendError,
    InvalidUpdateError,
    ValidationError,
)

__all__ = [
    "get_settings",
    "Settings",
    "setup_logging",
    "get_logger",
    "LoggerMixin",
    "StoreError",
    "BackendError",
    "InvalidUpdateError",
    "ValidationError",
]
