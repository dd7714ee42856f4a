"""
Centralized logging configuration for the thesis tracking engine.

Every module logs through structlog. Status derivation and reconciliation
use subsystem loggers so their audit events can be filtered apart from
the rest of the engine's output.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger

from ..config.defaults import LoggingParams

STATUS_SUBSYSTEM = "status"
RECONCILE_SUBSYSTEM = "reconciler"


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog on top of the stdlib logging bridge.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Render JSON lines instead of the colored console format
        include_timestamp: Add an ISO timestamp to every event
        include_caller: Add filename and line number to every event
        extra_processors: Processors inserted just before rendering
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s"
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))
    processors.extend(extra_processors or [])
    processors.append(
        structlog.processors.JSONRenderer() if format_json
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_params(params: LoggingParams, **kwargs: Any) -> None:
    """Configure structlog from the loaded logging section."""
    configure_logging(level=params.level, format_json=params.format_json, **kwargs)


def get_logger(name: str) -> FilteringBoundLogger:
    """Module logger, typically `get_logger(__name__)`."""
    return structlog.get_logger(name)


def _subsystem_logger(name: str, subsystem: str) -> FilteringBoundLogger:
    return get_logger(name).bind(subsystem=subsystem, audit_trail=True)


def get_status_logger(name: str) -> FilteringBoundLogger:
    """Logger for derived status changes and degraded evaluations."""
    return _subsystem_logger(name, STATUS_SUBSYSTEM)


def get_reconcile_logger(name: str) -> FilteringBoundLogger:
    """Logger for remote status writes."""
    return _subsystem_logger(name, RECONCILE_SUBSYSTEM)


def log_status_change(
    logger: FilteringBoundLogger,
    symbol: str,
    item_id: Any,
    from_status: Optional[str],
    to_status: str,
    rule: Optional[str],
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a derived status change.

    Args:
        logger: Structlog logger instance
        symbol: Ticker of the thesis
        item_id: Remote id of the thesis (None for local-only items)
        from_status: Previously derived status
        to_status: Newly derived status
        rule: Name of the rule that fired, None when no rule matched
        context: Price and progress details of the pass
    """
    bound_logger = logger.bind(
        event_type="status_change",
        symbol=symbol,
        item_id=item_id,
        from_status=from_status,
        to_status=to_status,
        rule=rule
    )
    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Status change")


def log_reconcile_write(
    logger: FilteringBoundLogger,
    item_id: Any,
    symbol: str,
    from_status: Optional[str],
    to_status: str,
    outcome: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log the outcome of one remote status write.

    Failed writes log at error, skipped ones at debug.

    Args:
        outcome: "written", "failed", "skipped_in_flight" or "skipped_in_sync"
    """
    bound_logger = logger.bind(
        event_type="reconcile_write",
        item_id=item_id,
        symbol=symbol,
        from_status=from_status,
        to_status=to_status,
        outcome=outcome
    )
    if context:
        bound_logger = bound_logger.bind(context=context)

    if outcome == "failed":
        bound_logger.error("Reconcile write failed")
    elif outcome == "written":
        bound_logger.info("Reconcile write")
    else:
        bound_logger.debug("Reconcile write skipped")
