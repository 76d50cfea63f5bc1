"""
Structured logging utility for the application.

Emits one JSON object per log line for CloudWatch, with e-mail masking,
context injection and operation timing.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from functools import wraps

# Filters applied to every StructuredLogger handler, including ones created later
_shared_filters: List[logging.Filter] = []
_structured_handlers: List[logging.Handler] = []


def mask_email(email: Optional[str]) -> str:
    """
    Mask an e-mail address so member contact details stay out of logs.

    Keeps the first character of the local part and the full domain.

    Example:
        >>> mask_email("priya.sharma@example.com")
        "p***@example.com"
    """
    if not email:
        return "unknown"

    local, sep, domain = str(email).partition("@")
    if not sep or not local or not domain:
        return "invalid"

    return f"{local[0]}***@{domain}"


def add_handler_filter(log_filter: logging.Filter) -> None:
    """Attach a filter to the output handler of every structured logger."""
    if log_filter not in _shared_filters:
        _shared_filters.append(log_filter)
    for handler in _structured_handlers:
        handler.addFilter(log_filter)


def remove_handler_filter(log_filter: logging.Filter) -> None:
    if log_filter in _shared_filters:
        _shared_filters.remove(log_filter)
    for handler in _structured_handlers:
        handler.removeFilter(log_filter)


class StructuredLogger:
    """
    JSON logger with context injection and operation timing.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter("%(message)s"))
            for log_filter in _shared_filters:
                handler.addFilter(log_filter)
            _structured_handlers.append(handler)
            self.logger.addHandler(handler)

    def _format_log(
        self,
        level: str,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None,
    ) -> str:
        """
        Format a log entry as a JSON string.

        Args:
            level: DEBUG, INFO, WARNING or ERROR
            message: Human-readable message
            operation: Operation name (e.g. "list", "approve_booking")
            context: Extra fields such as booking_id or collection
            duration_ms: Operation duration in milliseconds
            error: Error text if applicable

        Returns:
            JSON-formatted log string
        """
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "message": message,
        }

        if operation:
            log_entry["operation"] = operation

        if context:
            log_entry["context"] = context

        if duration_ms is not None:
            log_entry["duration_ms"] = round(duration_ms, 2)

        if error:
            log_entry["error"] = error

        return json.dumps(log_entry, ensure_ascii=False, default=str)

    def debug(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Log debug message."""
        self.logger.debug(self._format_log("DEBUG", message, operation, context))

    def info(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log info message."""
        self.logger.info(self._format_log("INFO", message, operation, context, duration_ms))

    def warning(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ):
        """Log warning message."""
        self.logger.warning(self._format_log("WARNING", message, operation, context, error=error))

    def error(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        duration_ms: Optional[float] = None,
    ):
        """Log error message."""
        self.logger.error(
            self._format_log("ERROR", message, operation, context, duration_ms, error)
        )


def log_operation(operation_name: str):
    """
    Decorator that logs start, duration and outcome of an operation.

    Usage:
        @log_operation("seed_bookings")
        def seed(records):
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = StructuredLogger(func.__module__)
            context: Dict[str, Any] = {"function": func.__name__}

            if "email" in kwargs:
                context["email_masked"] = mask_email(kwargs["email"])

            logger.debug(f"Starting {operation_name}", operation=operation_name, context=context)

            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed {operation_name}",
                    operation=operation_name,
                    context=context,
                    error=str(e),
                    duration_ms=(time.time() - start_time) * 1000,
                )
                raise

            logger.info(
                f"Completed {operation_name}",
                operation=operation_name,
                context=context,
                duration_ms=(time.time() - start_time) * 1000,
            )
            return result

        return wrapper

    return decorator


def get_logger(name: str) -> StructuredLogger:
    """Return a StructuredLogger for the given module name."""
    return StructuredLogger(name)
