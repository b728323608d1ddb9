"""Observability utilities for tsundoku.

Provides logging configuration with optional rotating file output, and
timing helpers that log the start, duration and outcome of operations.
"""
import functools
import inspect
import logging
import time
import uuid
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from tsundoku.exceptions import StorageError, TsundokuError

logger = logging.getLogger(__name__)

# Root of the package logger hierarchy
ROOT_LOGGER_NAME = "tsundoku"

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
LOG_FILE_NAME = "tsundoku.log"

# Arguments picked up as log context by traced(), first match wins
TRACED_ARGUMENTS = ("link_id", "tag")

# Type variable for decorators
F = TypeVar('F', bound=Callable[..., Any])


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.WARNING,
    max_bytes: int = 1024 * 1024,  # 1 MB per file
    backup_count: int = 3,
    console: bool = True,
) -> Optional[Path]:
    """Configure logging for the tsundoku logger hierarchy.

    A rotating file handler is installed when log_dir is given. Log files
    are rotated when they reach max_bytes, keeping backup_count old files.
    Calling this again replaces the handlers installed by a previous call.

    Args:
        log_dir: Directory for log files. None disables file logging.
        level: Logging level (default: WARNING)
        max_bytes: Maximum size per log file before rotation (default: 1 MB)
        backup_count: Number of rotated files to keep (default: 3)
        console: Also log to stderr (default: True)

    Returns:
        Path to the log file, or None when file logging is disabled.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_file = None
    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / LOG_FILE_NAME
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file is not None:
        root_logger.info(
            f"Logging configured: {log_file} (max {max_bytes} bytes, {backup_count} backups)"
        )
    return log_file


@contextmanager
def timed_operation(operation: str, **context):
    """Context manager for timing and logging operations.

    Args:
        operation: Name of the operation being performed
        **context: Additional context to include in log messages

    Yields:
        A dictionary where you can store result info (e.g., link_id)

    Example:
        with timed_operation('add_entry', link=entry.link) as op:
            op['link_id'] = do_insert()
    """
    correlation_id = str(uuid.uuid4())[:8]
    start_time = time.perf_counter()
    result_info: Dict[str, Any] = {'correlation_id': correlation_id}

    context_str = ', '.join(f'{k}={v}' for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    try:
        yield result_info
    except Exception as e:
        duration_ms = (time.perf_counter() - start_time) * 1000
        # Not-found and validation errors are answers for the caller, not faults
        expected = isinstance(e, TsundokuError) and not isinstance(e, StorageError)
        logger.log(
            logging.DEBUG if expected else logging.ERROR,
            f"[{correlation_id}] FAILED {operation} ({duration_ms:.2f}ms): {e}",
        )
        raise
    else:
        duration_ms = (time.perf_counter() - start_time) * 1000
        result_str = ', '.join(
            f'{k}={v}' for k, v in result_info.items() if k != 'correlation_id'
        )
        logger.debug(
            f"[{correlation_id}] END {operation} ({duration_ms:.2f}ms) [OK] {result_str}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Decorator for automatic operation tracing.

    Times the wrapped function and logs start and end with a correlation ID.
    A ``link_id`` or ``tag`` argument is added to the log context, whether
    it was passed by position or by keyword.

    Args:
        operation_name: Name to use for the operation. If None, uses function name.
    """
    def decorator(func: F) -> F:
        op_name = operation_name or func.__name__
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = {}
            try:
                arguments = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                # Bad call; let func raise it below
                arguments = {}
            for name in TRACED_ARGUMENTS:
                if name in arguments:
                    context[name] = arguments[name]
                    break

            with timed_operation(op_name, **context) as op:
                result = func(*args, **kwargs)
                if isinstance(result, (list, dict)):
                    op['result_count'] = len(result)
                elif result is not None:
                    op['has_result'] = True
                return result

        return wrapper  # type: ignore
    return decorator
