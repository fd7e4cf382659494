"""
Structured logging with per-operation context and engine event helpers.
"""

import logging
import json
import time
import traceback
from typing import Dict, Any, Optional
from contextvars import ContextVar
from functools import wraps

from friendmap.config import settings

# Context variables for operation tracking
user_id_context: ContextVar[str] = ContextVar('user_id', default='')
operation_context: ContextVar[str] = ContextVar('operation', default='')


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        user_id = user_id_context.get('')
        if user_id:
            log_entry['user_id'] = user_id

        operation = operation_context.get('')
        if operation:
            log_entry['operation'] = operation

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        # Add custom fields from extra
        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        if hasattr(record, 'duration'):
            log_entry['duration_ms'] = record.duration

        if hasattr(record, 'geohash'):
            log_entry['geohash'] = record.geohash

        return json.dumps(log_entry, default=str)


class EngineLogger:
    """Logger for discovery, cache and recommendation events."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def log_discovery(
        self,
        user_id: int,
        result_count: int,
        nodes_expanded: int,
        duration_ms: float,
        restricted_to: Optional[int] = None
    ):
        """Log a completed people-you-may-know traversal."""
        operation_context.set("discovery")

        self.logger.info(
            f"Discovery completed: {result_count} suggestions",
            extra={
                'extra_fields': {
                    'user_id': user_id,
                    'result_count': result_count,
                    'nodes_expanded': nodes_expanded,
                    'restricted_to': restricted_to
                },
                'duration': duration_ms
            }
        )

    def log_cache_update(
        self,
        user_id: int,
        action: str,
        affected: int,
        cache_size: int
    ):
        """Log a people cache rebuild, extension or pruning."""
        operation_context.set(f"people_cache_{action}")

        self.logger.info(
            f"People cache {action}: {affected} entries affected",
            extra={
                'extra_fields': {
                    'user_id': user_id,
                    'action': action,
                    'affected': affected,
                    'cache_size': cache_size
                }
            }
        )

    def log_recommendations(
        self,
        user_id: int,
        geohash: str,
        candidate_count: int,
        active_user_count: int,
        duration_ms: float
    ):
        """Log a scored place recommendation request."""
        operation_context.set("recommendation")

        self.logger.info(
            f"Recommendations scored: {candidate_count} places",
            extra={
                'extra_fields': {
                    'user_id': user_id,
                    'candidate_count': candidate_count,
                    'active_user_count': active_user_count
                },
                'geohash': geohash,
                'duration': duration_ms
            }
        )

    def log_feedback(
        self,
        user_id: int,
        feedback: str,
        adjustments: Dict[str, float]
    ):
        """Log a weight adjustment coming from user feedback."""
        operation_context.set("feedback")

        self.logger.info(
            f"Feedback applied: {feedback}",
            extra={
                'extra_fields': {
                    'user_id': user_id,
                    'feedback': feedback,
                    'adjustments': adjustments
                }
            }
        )

    def log_error(
        self,
        error: Exception,
        operation: str,
        context: Optional[Dict[str, Any]] = None
    ):
        """Log errors with full context."""
        operation_context.set(operation)

        extra_fields = {
            'operation': operation,
            'error_type': type(error).__name__,
            'error_message': str(error)
        }

        if context:
            extra_fields.update(context)

        self.logger.error(
            f"Operation failed: {operation}",
            exc_info=True,
            extra={'extra_fields': extra_fields}
        )


def log_operation(operation_name: str):
    """Decorator to log duration and failures of an async engine operation."""

    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger = EngineLogger(f"{func.__module__}.{func.__qualname__}")
            operation_context.set(operation_name)

            start_time = time.time()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.time() - start_time) * 1000
                logger.log_error(e, operation_name, {'duration_ms': duration_ms})
                raise

            duration_ms = (time.time() - start_time) * 1000
            logger.logger.debug(
                f"Operation completed: {operation_name}",
                extra={
                    'extra_fields': {'operation': operation_name, 'success': True},
                    'duration': duration_ms
                }
            )
            return result

        return async_wrapper

    return decorator


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
):
    """Configure application logging, defaulting to the configured settings."""
    level = getattr(logging, (log_level or settings.log_level).upper())
    log_file = log_file or settings.log_file

    if (log_format or settings.log_format) == "structured":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('friendmap').setLevel(level)


# Global logger instance
engine_logger = EngineLogger('friendmap.engine')
