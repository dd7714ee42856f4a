"""
Recovery strategy classifications for error handling.

These mixins describe how the engine continues after a failure: either the
operation is attempted again on a later evaluation pass, or the engine keeps
running with one value missing.
"""

from typing import Optional


class RecoverableError(Exception):
    """Mixin for failures that are retried by a later pass, without backoff."""

    def __init__(self, message: str, retry_strategy: str = "next_pass", **kwargs):
        super().__init__(message, **kwargs)
        self.retry_strategy = retry_strategy
        self.recoverable = True


class GracefulDegradationError(Exception):
    """Mixin for errors that allow continued operation with reduced functionality."""

    def __init__(self, message: str, degraded_functionality: Optional[str] = None,
                 fallback_strategy: Optional[str] = None, **kwargs):
        super().__init__(message)
        self.degraded_functionality = degraded_functionality
        self.fallback_strategy = fallback_strategy
        self.allows_degradation = True


class PriceLookupError(GracefulDegradationError):
    """Fallback price could not be resolved; the symbol shows as unavailable."""

    def __init__(self, message: str, symbol: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            degraded_functionality="current_price",
            fallback_strategy="cached_unavailable",
            **kwargs
        )
        self.symbol = symbol
