"""
Logger module for the restops backend.
Colored console logging with tenant-aware context prefixes.
"""

import logging
import os
from typing import Optional

import coloredlogs

LOG_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG
}

LOG_LEVEL = os.environ.get("RESTOPS_LOG_LEVEL", "INFO")

LOG_FORMAT = "[%(asctime)s] [%(hostname)s] [%(name)s] [%(levelname)s] %(message)s"

LEVEL_STYLES = dict(coloredlogs.DEFAULT_LEVEL_STYLES, warning={'color': 'yellow', 'bold': True})
FIELD_STYLES = dict(coloredlogs.DEFAULT_FIELD_STYLES, name={'color': 'cyan'})


def _console_formatter() -> logging.Formatter:
    return coloredlogs.ColoredFormatter(
        fmt=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        level_styles=LEVEL_STYLES,
        field_styles=FIELD_STYLES,
    )


def _format_context(context: dict) -> str:
    parts = [f"{key}={value}" for key, value in context.items() if value is not None]
    return f"[{' '.join(parts)}] " if parts else ""


class RestOpsLogger:
    """
    Logger used across the restops apps.

    Wraps a stdlib logger with a coloredlogs console handler. Messages can carry
    a tenant context prefix (restaurant, branch, order) through ``bind``.
    """

    def __init__(self, module_name: str = "", level: Optional[str] = None, context: Optional[dict] = None) -> None:
        """
        Args:
            module_name (str): Name of the module using the logger
            level (Optional[str]): Log level, defaults to RESTOPS_LOG_LEVEL
            context (Optional[dict]): Key/value pairs prefixed to every message
        """
        self.logger = logging.getLogger(module_name)
        self.context = dict(context or {})

        if not self.logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(_console_formatter())
            console_handler.addFilter(coloredlogs.HostNameFilter())
            self.logger.addHandler(console_handler)

            log_level = level if level else LOG_LEVEL
            self.logger.setLevel(LOG_LEVELS.get(log_level.upper(), LOG_LEVELS["INFO"]))
            self.logger.propagate = False

    def bind(self, **context) -> "RestOpsLogger":
        """Return a logger for the same module whose messages carry extra context."""
        merged = {**self.context, **context}
        return RestOpsLogger(self.logger.name, context=merged)

    def _prefix(self, message: str) -> str:
        return f"{_format_context(self.context)}{message}"

    def debug(self, message: str) -> None:
        self.logger.debug(self._prefix(message))

    def info(self, message: str) -> None:
        self.logger.info(self._prefix(message))

    def warning(self, message: str) -> None:
        self.logger.warning(self._prefix(message))

    def error(self, message: str, exc_info: bool = False) -> None:
        """
        Log error message

        Args:
            message (str): Error message
            exc_info (bool): Include exception traceback if True
        """
        self.logger.error(self._prefix(message), exc_info=exc_info)

    def critical(self, message: str, exc_info: bool = False) -> None:
        self.logger.critical(self._prefix(message), exc_info=exc_info)
