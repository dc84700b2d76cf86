"""
Observability Infrastructure

Provides structured logging, correlation tracking and Prometheus metrics for the
scheduling core.
"""

import contextvars
import functools
import logging
import sys
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from prometheus_client import Counter, Histogram

from .config import settings

# Context variables for correlation tracking
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
tenant_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "tenant_id", default=""
)

F = TypeVar("F", bound=Callable[..., Any])

# Prometheus metrics
REQUEST_COUNT = Counter(
    "schedule_core_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_DURATION = Histogram(
    "schedule_core_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
)

SCHEDULER_OPERATIONS = Counter(
    "schedule_core_operations_total",
    "Total scheduling operations",
    ["operation_type", "status"],
)

SCHEDULER_DURATION = Histogram(
    "schedule_core_operation_duration_seconds",
    "Scheduling operation duration",
    ["operation_type"],
)

EXPANDED_OCCURRENCES = Histogram(
    "schedule_core_expanded_occurrences",
    "Occurrences produced per series expansion",
    buckets=(0, 1, 5, 10, 50, 100, 500, 1000, 5000),
)

EXPANSION_REJECTIONS = Counter(
    "schedule_core_expansion_rejections_total",
    "Expansions rejected by the range guard",
    ["limit_type"],
)

CONFLICTS_DETECTED = Counter(
    "schedule_core_conflicts_detected_total",
    "Conflicts reported by the conflict detector",
    ["source"],
)


class CorrelationIdProcessor:
    """Structlog processor to add correlation and tenant IDs to all log entries."""

    def __call__(
        self, logger: Any, name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        correlation_id = correlation_id_var.get("")
        tenant_id = tenant_id_var.get("")

        if correlation_id:
            event_dict["correlation_id"] = correlation_id
        if tenant_id:
            event_dict["tenant_id"] = tenant_id

        return event_dict


def setup_structured_logging() -> None:
    """Configure structured logging with JSON output and correlation tracking."""

    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        CorrelationIdProcessor(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.add_log_level,
        structlog.processors.add_logger_name,
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=settings.ENVIRONMENT == "local")
        )

    # add_logger_name needs a stdlib logger underneath
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    if settings.LOG_SQL:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID for request tracking."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    correlation_id_var.set(correlation_id)
    return correlation_id


def set_tenant_id(tenant_id: str) -> None:
    """Set tenant ID for log context."""
    tenant_id_var.set(tenant_id)


def monitor_performance(operation_type: str) -> Callable[[F], F]:
    """Decorator to monitor a scheduling operation with metrics and logging."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(func.__module__)
            start_time = time.perf_counter()
            log_context = {
                "operation": operation_type,
                "function": func.__name__,
            }

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                SCHEDULER_OPERATIONS.labels(
                    operation_type=operation_type, status="error"
                ).inc()
                logger.warning(
                    "Operation failed",
                    **log_context,
                    duration_seconds=duration,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            duration = time.perf_counter() - start_time
            SCHEDULER_OPERATIONS.labels(
                operation_type=operation_type, status="success"
            ).inc()
            SCHEDULER_DURATION.labels(operation_type=operation_type).observe(duration)
            logger.debug(
                "Operation completed", **log_context, duration_seconds=duration
            )
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
