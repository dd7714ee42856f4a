"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_review_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate needs-review thresholds."""
        errors = []

        for field in ("stop_proximity_pct", "downside_review_pct"):
            if field in params:
                value = params[field]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=field,
                        message="Must be a non-negative number",
                        value=value
                    ))

        if "zero_stop_distance_pct" in params:
            value = params["zero_stop_distance_pct"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="zero_stop_distance_pct",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_api_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate REST collaborator parameters."""
        errors = []

        if "base_url" in params:
            value = params["base_url"]
            parsed = urlparse(value) if isinstance(value, str) else None
            if not parsed or parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append(ValidationError(
                    field="base_url",
                    message="Must be an http(s) URL",
                    value=value
                ))

        if "timeout_seconds" in params:
            value = params["timeout_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_quote_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate live quote feed parameters."""
        errors = []

        if "cache_ttl_seconds" in params:
            value = params["cache_ttl_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="cache_ttl_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "poll_interval_seconds" in params:
            value = params["poll_interval_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="poll_interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        if "format_json" in params and not isinstance(params["format_json"], bool):
            errors.append(ValidationError(
                field="format_json",
                message="Must be a boolean",
                value=params["format_json"]
            ))

        return errors

    @classmethod
    def validate_config(cls, config: dict[str, Any]) -> list[ValidationError]:
        """Validate a merged configuration dictionary."""
        errors = []
        errors.extend(cls.validate_review_params(config.get("review", {})))
        errors.extend(cls.validate_api_params(config.get("api", {})))
        errors.extend(cls.validate_quote_params(config.get("quotes", {})))
        errors.extend(cls.validate_logging_params(config.get("logging", {})))
        return errors
