"""pcancellable error hierarchy."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCategory(StrEnum):
    """Category of error for classification and handling."""

    CANCELLATION = "cancellation"
    USAGE = "usage"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class CancellableError(Exception):
    """Base error for all pcancellable exceptions."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.details: dict[str, Any] = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, category={self.category!r})"


class CancellationError(CancellableError):
    """Rejection reason delivered when a throw-on-cancel root is canceled."""

    name = "CancellationError"

    def __init__(self, message: str = "Cancellable was canceled") -> None:
        super().__init__(message, category=ErrorCategory.CANCELLATION, retryable=False)


class ExecutorError(CancellableError, TypeError):
    """The executor handed to ``Cancellable`` is not callable."""

    def __init__(self, executor: Any) -> None:
        super().__init__(
            f"Cancellable resolver {executor!r} is not a function",
            category=ErrorCategory.USAGE,
            retryable=False,
        )
        self.executor = executor


class ConfigurationError(CancellableError):
    """Invalid configuration value."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message, category=ErrorCategory.CONFIGURATION, retryable=False)
        self.key = key
