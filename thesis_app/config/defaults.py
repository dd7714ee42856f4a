"""Default configuration parameters for the thesis status engine."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ApiParams:
    """REST collaborator parameters."""
    base_url: str = "http://localhost:3000"
    timeout_seconds: float = 10.0
    user_agent: str = "thesis-app/0.1"


@dataclass(frozen=True)
class ReviewParams:
    """Needs-review risk overlay thresholds."""
    stop_proximity_pct: float = 10.0                 # Max distance above stop while losing ground
    downside_review_pct: float = 20.0                # Drawdown from entry that always flags review
    zero_stop_distance_pct: float = 1000.0           # Distance used when stop is 0 ("far from danger")


@dataclass(frozen=True)
class QuoteParams:
    """Live quote feed parameters."""
    cache_ttl_seconds: float = 60.0                  # Snapshot reuse window per symbol set
    poll_interval_seconds: float = 60.0              # Coordinator refresh cadence


@dataclass(frozen=True)
class SymbolParams:
    """Ticker symbol validation parameters."""
    max_length: int = 10
    pattern: str = r"^[A-Z0-9.\-=/]{1,10}$"


@dataclass(frozen=True)
class LoggingParams:
    """Logging parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    api: ApiParams
    review: ReviewParams
    quotes: QuoteParams
    symbols: SymbolParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        api=ApiParams(),
        review=ReviewParams(),
        quotes=QuoteParams(),
        symbols=SymbolParams(),
        logging=LoggingParams(),
    )
