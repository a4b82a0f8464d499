"""
Centralized logging configuration for the flightwatch system.

Watchlist sync and entitlement code obtain their loggers here so that every
event carries the same structure. Entitlement gate decisions and phase
transitions go through the two helpers at the bottom of this module.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger

SYNC_SUBSYSTEM = "watchlist_sync"
ENTITLEMENT_SUBSYSTEM = "entitlement"


def configure_logging(level: str = "INFO", format_json: bool = False) -> None:
    """
    Configure structlog for the application.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Emit one JSON object per event instead of console output
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stdout,
        format="%(message)s",
    )

    renderer = (
        structlog.processors.JSONRenderer() if format_json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    return structlog.get_logger(name)


def get_sync_logger(name: str) -> FilteringBoundLogger:
    """Logger for watchlist refreshes, tagged with the sync subsystem."""
    return get_logger(name).bind(subsystem=SYNC_SUBSYSTEM)


def get_entitlement_logger(name: str) -> FilteringBoundLogger:
    """
    Logger for the entitlement engine.

    Purchases, restores and quota decisions are audit relevant, so events
    carry an ``audit_trail`` marker.
    """
    return get_logger(name).bind(subsystem=ENTITLEMENT_SUBSYSTEM, audit_trail=True)


def _with_context(
    logger: FilteringBoundLogger,
    context: Optional[dict[str, Any]],
    **fields: Any
) -> FilteringBoundLogger:
    bound = logger.bind(**fields)
    return bound.bind(context=context) if context else bound


def log_gate_decision(
    logger: FilteringBoundLogger,
    gate_name: str,
    passed: bool,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log whether a gated action (search, track) was let through.

    Denials are warnings so exhausted quotas stand out in the audit trail.
    """
    bound = _with_context(
        logger, context,
        gate_name=gate_name,
        gate_result="PASS" if passed else "FAIL",
        reason=reason,
    )
    if passed:
        bound.info("Gate passed")
    else:
        bound.warning("Gate failed")


def log_state_transition(
    logger: FilteringBoundLogger,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """Log an entitlement phase change and what caused it (load, purchase, ...)."""
    _with_context(
        logger, context,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    ).info("State transition")
