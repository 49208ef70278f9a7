from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False
_PACKAGE_LOGGER = logging.getLogger("repo_context")
_STDERR_HANDLER = logging.StreamHandler(sys.stderr)


def _attach(handler: logging.Handler) -> None:
    handler.setFormatter(logging.Formatter("%(message)s"))
    _PACKAGE_LOGGER.addHandler(handler)


def setup_logging(filename: str | Path | None = None) -> structlog.BoundLogger:
    """Set up structured logging for the repo_context package.

    structlog is configured on the first call only. Logs go to stderr until a
    `filename` is given; from then on they go to that file instead.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.

    Returns:
        A structlog logger instance configured for the repo_context package.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if not _LOGGING_CONFIGURED:
        _PACKAGE_LOGGER.setLevel(logging.INFO)
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True

    if filename:
        _PACKAGE_LOGGER.removeHandler(_STDERR_HANDLER)
        _attach(logging.FileHandler(str(filename), encoding="utf-8"))
    elif not _PACKAGE_LOGGER.handlers:
        _attach(_STDERR_HANDLER)

    return structlog.get_logger("repo_context")


logger = setup_logging()
