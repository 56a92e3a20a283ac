"""pcancellable - asyncio futures that can be canceled after creation."""

from pcancellable.cancellable import CANCELLABLE_MARKER, Cancellable, resolve_later
from pcancellable.config import CancellableConfig, get_config, load_config, set_config
from pcancellable.errors import (
    CancellableError,
    CancellationError,
    ConfigurationError,
    ErrorCategory,
    ExecutorError,
)
from pcancellable.logger import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    # cancellable
    "CANCELLABLE_MARKER",
    "Cancellable",
    "resolve_later",
    # config
    "CancellableConfig",
    "get_config",
    "load_config",
    "set_config",
    # errors
    "CancellableError",
    "CancellationError",
    "ConfigurationError",
    "ErrorCategory",
    "ExecutorError",
    # logger
    "get_logger",
    "setup_logging",
]
