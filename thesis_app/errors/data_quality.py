"""
Data quality error classifications for thesis records and prices.

These exceptions categorize bad local or remote data that the engine
handles gracefully instead of aborting an evaluation pass.
"""

from typing import Any, Dict, Optional


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MalformedThresholdError(DataQualityError):
    """A price level or current price is not a finite number."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class InvalidSymbolError(DataQualityError):
    """Ticker symbol is empty, too long or outside the allowed charset."""

    def __init__(self, message: str, symbol: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.symbol = symbol


class MalformedRecordError(DataQualityError):
    """Remote thesis record cannot be normalized."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 missing_fields: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.missing_fields = missing_fields or []
