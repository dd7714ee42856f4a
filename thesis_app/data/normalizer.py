"""
Thesis record normalization for converting raw remote data to tracked items.

This module handles parsing, validation, and normalization of thesis records
returned by the thesis store, including symbol validation, numeric level
coercion and JSON-encoded tag lists.
"""

import json
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import structlog

from ..config.defaults import SymbolParams
from ..errors import InvalidSymbolError, MalformedRecordError
from ..status.models import ThesisStatus, TrackedItem
from ..utils.time import parse_timestamp

logger = structlog.get_logger(__name__)


@dataclass
class NormalizationResult:
    """Result of record normalization."""
    # Normalized item (None if invalid)
    item: Optional[TrackedItem] = None
    # Processing metadata
    success: bool = True
    error_msg: Optional[str] = None

    @classmethod
    def ok(cls, item: TrackedItem) -> "NormalizationResult":
        """Create successful result with normalized item."""
        return cls(item=item, success=True)

    @classmethod
    def error(cls, error_msg: str) -> "NormalizationResult":
        """Create error result."""
        return cls(success=False, error_msg=error_msg)


def normalize_symbol(raw: Any, params: Optional[SymbolParams] = None) -> str:
    """
    Normalize a ticker to uppercase and validate it.

    Raises:
        InvalidSymbolError: if the symbol is empty, too long or has
            characters outside the allowed set
    """
    params = params or SymbolParams()
    symbol = str(raw or "").strip().upper()

    if not symbol or len(symbol) > params.max_length or not re.match(params.pattern, symbol):
        raise InvalidSymbolError(f"Invalid symbol: {raw!r}", symbol=symbol)

    return symbol


def parse_level(value: Any, field: str) -> Optional[float]:
    """
    Coerce a stored price level to float.

    Empty values map to None; numeric strings are parsed.

    Raises:
        MalformedRecordError: if the value is not numeric
    """
    if value is None or value == "":
        return None

    if isinstance(value, bool):
        raise MalformedRecordError(f"Invalid {field}: {value!r}", raw_data=repr(value))

    if isinstance(value, (int, float, Decimal)):
        return float(value)

    try:
        return float(str(value).strip())
    except ValueError as e:
        raise MalformedRecordError(f"Invalid {field}: {e}", raw_data=repr(value)[:100]) from e


def parse_tags(value: Any) -> list[str]:
    """Tags arrive as a list or as a JSON-encoded list."""
    if value is None or value == "":
        return []

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"Failed to parse tags JSON: {e}", raw_data=value[:100]) from e

    if not isinstance(value, list):
        raise MalformedRecordError("tags must be a list", raw_data=repr(value)[:100])

    return [str(tag) for tag in value]


class ThesisNormalizer:
    """
    Thesis record normalization pipeline.

    Converts raw store records into TrackedItems.
    """

    def __init__(self, symbol_params: Optional[SymbolParams] = None):
        self.symbol_params = symbol_params or SymbolParams()
        self.logger = logger

    def normalize_record(self, record: Any) -> NormalizationResult:
        """
        Normalize a raw thesis record.

        The stored status becomes both the item's prior status and its last
        known remote status. Unknown stored statuses map to None so the
        reconciler rewrites them.

        Args:
            record: Raw thesis record dictionary

        Returns:
            NormalizationResult with the item or error information
        """
        if not isinstance(record, dict):
            return NormalizationResult.error(f"Record must be a dict, got {type(record).__name__}")

        try:
            symbol = normalize_symbol(record.get("symbol"), self.symbol_params)

            stored_status = ThesisStatus.parse(record.get("status"))
            last_updated = (
                record.get("last_updated")
                or record.get("lastUpdated")
                or record.get("last_updated_at")
            )

            item = TrackedItem(
                symbol=symbol,
                id=record.get("id"),
                entry=parse_level(record.get("entry"), "entry"),
                target=parse_level(record.get("target"), "target"),
                stop=parse_level(record.get("stop"), "stop"),
                status=stored_status,
                last_known_remote_status=stored_status,
                name=record.get("name"),
                thesis=record.get("thesis"),
                tags=parse_tags(record.get("tags")),
                last_updated=parse_timestamp(last_updated),
                created_at=parse_timestamp(record.get("created_at")),
            )
            return NormalizationResult.ok(item)

        except (InvalidSymbolError, MalformedRecordError) as e:
            return NormalizationResult.error(str(e))

    def normalize_records(self, records: Any) -> list[TrackedItem]:
        """Normalize a list of records, logging and skipping bad ones."""
        if not isinstance(records, list):
            self.logger.warning(
                "Thesis list payload is not a list, ignoring",
                payload_type=type(records).__name__
            )
            return []

        items = []
        for record in records:
            result = self.normalize_record(record)
            if result.success and result.item is not None:
                items.append(result.item)
            else:
                self.logger.warning(
                    "Skipping malformed thesis record",
                    record_id=record.get("id") if isinstance(record, dict) else None,
                    error=result.error_msg
                )
        return items

