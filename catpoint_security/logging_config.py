"""Centralized logging configuration for the catpoint security system."""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from typing import Optional, Dict, Any
from pathlib import Path

from .config.defaults import SYSTEM_CONSTANTS

LOGGER_NAMESPACE = "catpoint"

# Component loggers handed out by get_logger
_component_loggers: Dict[str, logging.Logger] = {}


class StructuredFormatter(logging.Formatter):
    """Custom formatter that adds structured information to log records."""

    def __init__(self, include_context: bool = True):
        self.include_context = include_context
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured information."""
        base_format = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s"

        if self.include_context and hasattr(record, 'context'):
            context_str = " | ".join([f"{k}={v}" for k, v in record.context.items()])
            base_format += f" | Context: {context_str}"

        # Point at the source for errors carrying a traceback
        if record.levelno >= logging.ERROR and record.exc_info:
            base_format += " | %(pathname)s:%(lineno)d"

        formatter = logging.Formatter(base_format)
        return formatter.format(record)


class ContextFilter(logging.Filter):
    """Filter that adds system context to log records."""

    def __init__(self, component_name: Optional[str] = None):
        super().__init__()
        self.component_name = component_name
        self.process_id = os.getpid()

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context information to log record."""
        record.process_id = self.process_id

        if self.component_name:
            record.component = self.component_name

        return True


class LoggingManager:
    """Installs console and rotating file handlers for the catpoint loggers."""

    def __init__(self, log_dir: str = "logs", log_level: int = logging.INFO):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.main_log_file = self.log_dir / "catpoint.log"
        self.error_log_file = self.log_dir / "errors.log"

        self.log_level = log_level
        self.max_log_size = SYSTEM_CONSTANTS["LOG_ROTATION_SIZE_MB"] * 1024 * 1024
        self.backup_count = SYSTEM_CONSTANTS["LOG_BACKUP_COUNT"]

        self._handlers: list = []
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Attach handlers to the package logger namespace."""
        package_logger = logging.getLogger(LOGGER_NAMESPACE)
        package_logger.setLevel(self.log_level)

        # Replace handlers from a previous setup
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(StructuredFormatter(include_context=False))

        main_file_handler = logging.handlers.RotatingFileHandler(
            self.main_log_file,
            maxBytes=self.max_log_size,
            backupCount=self.backup_count
        )
        main_file_handler.setLevel(logging.DEBUG)
        main_file_handler.setFormatter(StructuredFormatter(include_context=True))

        error_file_handler = logging.handlers.RotatingFileHandler(
            self.error_log_file,
            maxBytes=self.max_log_size,
            backupCount=self.backup_count
        )
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(StructuredFormatter(include_context=True))

        self._handlers = [console_handler, main_file_handler, error_file_handler]
        for handler in self._handlers:
            package_logger.addHandler(handler)

        package_logger.debug("Logging system initialized")

    def close(self) -> None:
        """Detach and close the handlers installed by this manager."""
        package_logger = logging.getLogger(LOGGER_NAMESPACE)
        for handler in self._handlers:
            package_logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def get_log_stats(self) -> Dict[str, Any]:
        """Get logging statistics."""
        stats = {
            "log_directory": str(self.log_dir),
            "log_files": {},
            "active_loggers": sorted(_component_loggers.keys()),
            "log_level": logging.getLevelName(self.log_level)
        }

        for log_file in [self.main_log_file, self.error_log_file]:
            if log_file.exists():
                stats["log_files"][log_file.name] = {
                    "size_mb": log_file.stat().st_size / (1024 * 1024),
                    "modified": datetime.fromtimestamp(log_file.stat().st_mtime).isoformat()
                }

        return stats


def get_logger(component_name: str) -> logging.Logger:
    """Get or create the logger for a component."""
    if component_name in _component_loggers:
        return _component_loggers[component_name]

    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component_name}")
    logger.addFilter(ContextFilter(component_name))

    _component_loggers[component_name] = logger
    return logger


def log_with_context(logger: logging.Logger, level: int,
                     message: str, context: Optional[Dict[str, Any]] = None) -> None:
    """Log message with additional context information."""
    if context:
        logger.log(level, message, extra={'context': context})
    else:
        logger.log(level, message)


def setup_logging(log_level: str = "INFO", log_dir: str = "logs") -> LoggingManager:
    """Setup centralized logging system."""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    return LoggingManager(log_dir, numeric_level)
