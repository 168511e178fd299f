"""
Structured Logging with Analysis Correlation IDs.

Provides utilities for production-ready logging of analytics runs:
- Context ID correlation across log entries of one analysis
- Structured JSON logging format
- Performance timing
"""
import json
import logging
import time
import uuid
import threading
from functools import wraps

logger = logging.getLogger(__name__)

# Thread-local storage for analysis context
_analysis_context = threading.local()

_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'thread', 'threadName',
    'exc_info', 'exc_text', 'message', 'taskName',
))


# ============================================================================
# CONTEXT ID MANAGEMENT
# ============================================================================

def get_context_id() -> str:
    """Get current context ID or generate a new one."""
    return getattr(_analysis_context, 'context_id', None) or str(uuid.uuid4())[:8]


def set_context_id(context_id: str):
    """Set context ID in thread-local storage."""
    _analysis_context.context_id = context_id


def clear_context():
    """Clear all analysis context."""
    if hasattr(_analysis_context, 'context_id'):
        delattr(_analysis_context, 'context_id')


# ============================================================================
# STRUCTURED LOG FORMATTER
# ============================================================================

class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in format:
    {"timestamp": "...", "level": "INFO", "context_id": "abc123", "message": "..."}
    """

    def format(self, record):
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'context_id': get_context_id(),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        return json.dumps(log_data, default=str)


# ============================================================================
# LOGGING UTILITIES
# ============================================================================

def log_with_context(level: str, message: str, **extra):
    """
    Log with current analysis context and extra fields.

    Usage:
        log_with_context('info', 'Correlations stored', user_id=user_id, created_count=3)
    """
    log_func = getattr(logger, level.lower(), logger.info)
    log_func(message, extra=extra)


# ============================================================================
# DECORATOR FOR FUNCTION LOGGING
# ============================================================================

def log_function_call(log_args: bool = False, log_result: bool = False):
    """
    Decorator to log function entry/exit with timing.

    Usage:
        @log_function_call(log_args=True)
        def analyze_optimal_timing(self, user_id, habit_id, start_date, end_date):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            func_name = f"{func.__module__}.{func.__qualname__}"

            if log_args:
                log_with_context('debug', f'Entering {func_name}',
                                 func_args=str(args)[:200], func_kwargs=str(kwargs)[:200])

            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = (time.perf_counter() - start) * 1000
                log_with_context('error', f'Error in {func_name}: {e}',
                                 duration_ms=round(duration, 2),
                                 error_type=type(e).__name__)
                raise

            duration = (time.perf_counter() - start) * 1000
            if log_result:
                log_with_context('debug', f'Exited {func_name}',
                                 duration_ms=round(duration, 2),
                                 result=str(result)[:200])
            else:
                log_with_context('debug', f'Exited {func_name}',
                                 duration_ms=round(duration, 2))
            return result

        return wrapper
    return decorator
