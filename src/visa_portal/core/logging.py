"""Structured logging configuration."""

import logging
import sys
import time
from typing import Any, Dict, Optional
from datetime import datetime, timezone
from contextlib import contextmanager

import structlog
from structlog.stdlib import LoggerFactory

from .config import settings


def configure_logging(log_level: Optional[str] = None, environment: Optional[str] = None) -> None:
    """Configure structured logging for the workflow layer."""
    level = (log_level or settings.log_level).upper()
    env = environment or settings.environment

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if env == "production"
            else structlog.dev.ConsoleRenderer(colors=True),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("workflow").setLevel(logging.INFO)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)


def log_operation_context(
    application_id: str = None,
    actor_id: str = None,
    entity_id: str = None,
    **kwargs: Any
) -> Dict[str, Any]:
    """Create logging context for a workflow operation.

    Args:
        application_id: Application the operation belongs to
        actor_id: Actor performing the operation
        entity_id: Sub-entity being mutated (document, request, interview, message)
        **kwargs: Additional context

    Returns:
        Context dictionary for logging
    """
    context = {}

    if application_id:
        context["application_id"] = application_id
    if actor_id:
        context["actor_id"] = actor_id
    if entity_id:
        context["entity_id"] = entity_id

    context.update(kwargs)
    return context


class PerformanceLogger:
    """Logger for timing remote calls."""

    def __init__(self, logger_name: str = "performance"):
        self.logger = get_logger(logger_name)

    @contextmanager
    def log_operation_time(
        self,
        operation: str,
        **context: Any
    ):
        """Context manager to log operation execution time.

        Args:
            operation: Name of the operation being timed
            **context: Additional context for logging
        """
        start_time = time.monotonic()

        self.logger.debug(
            "Operation started",
            operation=operation,
            **context
        )

        try:
            yield

            self.logger.debug(
                "Operation completed",
                operation=operation,
                duration_seconds=round(time.monotonic() - start_time, 3),
                **context
            )

        except Exception as e:
            self.logger.warning(
                "Operation failed",
                operation=operation,
                duration_seconds=round(time.monotonic() - start_time, 3),
                error=str(e),
                error_type=type(e).__name__,
                **context
            )
            raise


class WorkflowLogger:
    """Logger for state transitions across the case sub-workflows."""

    def __init__(self, logger_name: str = "workflow"):
        self.logger = get_logger(logger_name)

    def log_transition(
        self,
        machine: str,
        entity_id: str,
        old_state: str,
        new_state: str,
        action: str,
        **context: Any
    ):
        """Log a completed state transition."""
        self.logger.info(
            "State transition completed",
            machine=machine,
            entity_id=entity_id,
            old_state=old_state,
            new_state=new_state,
            action=action,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **context
        )

    def log_rejected_transition(
        self,
        machine: str,
        entity_id: str,
        state: str,
        action: str,
        **context: Any
    ):
        """Log a transition refused by the local table."""
        self.logger.warning(
            "State transition rejected",
            machine=machine,
            entity_id=entity_id,
            state=state,
            action=action,
            **context
        )


class ErrorLogger:
    """Logger for detailed error tracking and debugging."""

    def __init__(self, logger_name: str = "error"):
        self.logger = get_logger(logger_name)

    def log_error_with_context(
        self,
        error: Exception,
        operation: str,
        actor_id: str = None,
        application_id: str = None,
        **context: Any
    ):
        """Log error with context for debugging.

        Args:
            error: The exception that occurred
            operation: Name of the operation that failed
            actor_id: Actor ID if applicable
            application_id: Application ID if applicable
            **context: Additional context
        """
        self.logger.error(
            "Detailed error occurred",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            actor_id=actor_id,
            application_id=application_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **context
        )

    def log_validation_error(
        self,
        field: str,
        value: Any,
        error_message: str,
        **context: Any
    ):
        """Log validation errors with field details."""
        self.logger.warning(
            "Validation error",
            field=field,
            value=str(value)[:100],
            error_message=error_message,
            **context
        )


# Global logger instances
performance_logger = PerformanceLogger()
workflow_logger = WorkflowLogger()
error_logger = ErrorLogger()
