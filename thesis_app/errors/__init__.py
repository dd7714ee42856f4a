"""
Error classification system for the thesis status engine.

This module provides a structured exception hierarchy for the failures met
while normalizing thesis records, resolving prices and writing status back
to the remote store.
"""

from .data_quality import (
    DataQualityError,
    MalformedThresholdError,
    InvalidSymbolError,
    MalformedRecordError,
)
from .system_failures import (
    SystemFailureError,
    ApiError,
    PersistenceError,
)
from .recovery import (
    RecoverableError,
    GracefulDegradationError,
    PriceLookupError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedThresholdError",
    "InvalidSymbolError",
    "MalformedRecordError",
    # System Failures
    "SystemFailureError",
    "ApiError",
    "PersistenceError",
    # Recovery Categories
    "RecoverableError",
    "GracefulDegradationError",
    "PriceLookupError",
]
