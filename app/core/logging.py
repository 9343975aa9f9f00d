"""Structured logging configuration for the Governance Phase Gating service."""

import logging
import sys
from typing import Any


class StructuredFormatter(logging.Formatter):
    """key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        if hasattr(record, "project_id"):
            log_data["project_id"] = record.project_id

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return " ".join(f"{k}={v}" for k, v in log_data.items())


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        from app.core.config import get_settings

        settings = get_settings()
        logger.setLevel(logging.DEBUG if settings.GOVERNANCE_ENV == "dev" else logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (e.g., project_id)
    """
    extra: dict[str, Any] = {}
    if "project_id" in kwargs:
        extra["project_id"] = kwargs.pop("project_id")
    extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)
