"""
Simple structured logging setup using structlog directly.

No wrappers, just standard structlog configuration.
"""

import logging

import structlog

from bookstore.settings import settings


def setup_logging() -> None:
    """
    Setup structured logging with structlog.

    Uses settings from centralized configuration.
    """
    logging.basicConfig(format="%(message)s", level=settings.observability.log_level.value)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    # Use JSON or console output based on settings
    if settings.observability.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_audit_logger() -> structlog.stdlib.BoundLogger:
    """Logger for administrative actions on plans and subscriptions."""
    return structlog.get_logger("audit")


def log_audit_event(
    action: str,
    user_id: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    **kwargs,
) -> None:
    """Log an audit event as a structured log entry."""
    get_audit_logger().info(
        action,
        audit_user_id=user_id,
        audit_resource_type=resource_type,
        audit_resource_id=resource_id,
        **kwargs,
    )
