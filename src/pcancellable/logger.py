"""Structured logging using structlog.

The library itself only emits events; applications opt in to rendering by
calling :func:`setup_logging`, usually with the loaded config.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from pcancellable.config import CancellableConfig

LOGGER_NAME = "pcancellable"


def setup_logging(
    config: CancellableConfig | None = None,
    *,
    debug: bool | None = None,
    json_output: bool | None = None,
) -> None:
    """Configure stdlib logging and structlog.

    Args:
        config: Source of the ``debug`` and ``json_logs`` defaults.
        debug: Override: enable DEBUG level (cancel walks log at debug).
        json_output: Override: render JSON lines instead of console output.
    """
    if debug is None:
        debug = config.debug if config is not None else False
    if json_output is None:
        json_output = config.json_logs if config is not None else False

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.INFO,
    )
    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG if debug else logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = LOGGER_NAME, **kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, optionally pre-bound with ``kwargs``."""
    return structlog.get_logger(name, **kwargs)
