"""Logging setup and per-operation timing for the extt note store.

Store operations are wrapped with :func:`traced`, which times each call,
records the outcome in the process-wide :data:`metrics` collector and writes
DEBUG start/end lines tagged with a short correlation id.
"""
import functools
import logging
import re
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".extt" / "logs"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar('F', bound=Callable[..., Any])


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Send ``extt`` log records to ``<log_dir>/extt.log`` with size rotation.

    Calling it again moves logging to the new directory; only one rotating
    file handler is ever attached.

    Args:
        log_dir: Directory for the log file, ``~/.extt/logs`` by default.
        level: Level for the ``extt`` logger and the file handler.
        max_bytes: Size at which the file is rotated.
        backup_count: Rotated files kept next to the live one.
        console: Also attach a stderr handler.

    Returns:
        The log directory.

    Raises:
        OSError: If the directory or file cannot be created.
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    extt_logger = logging.getLogger("extt")
    extt_logger.setLevel(level)

    for handler in list(extt_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            extt_logger.removeHandler(handler)
            handler.close()

    log_file = log_path / "extt.log"
    file_handler = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(_formatter())
    extt_logger.addHandler(file_handler)

    if console:
        configure_console_logging(level)

    extt_logger.info(f"Logging to {log_file} (rotate at {max_bytes} bytes, keep {backup_count})")
    return log_path


def configure_console_logging(level: int = logging.WARNING) -> None:
    """Attach a stderr handler to the ``extt`` logger if none is present."""
    extt_logger = logging.getLogger("extt")
    extt_logger.setLevel(level)
    if any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        for h in extt_logger.handlers
    ):
        return
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(_formatter())
    extt_logger.addHandler(console_handler)


def _sanitize_error_message(message: Optional[str], max_length: int = 200) -> Optional[str]:
    """Strip home-directory paths and line breaks from an error message."""
    if message is None:
        return None
    home = str(Path.home())
    result = message.replace(home, "~") if home and home != "/" else message
    result = result.replace("\r", " ").replace("\n", " ")
    result = re.sub(r" {2,}", " ", result).strip()
    if len(result) > max_length:
        result = result[: max_length - 3] + "..."
    return result


@dataclass
class OperationMetrics:
    """Running totals for one operation name."""
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float = float('inf')
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None


class MetricsCollector:
    """In-memory, thread-safe counters keyed by operation name."""

    def __init__(self):
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._lock = Lock()

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None
    ) -> None:
        """Add one call of ``operation`` to its totals.

        A failure's message is sanitized before it is kept as ``last_error``.
        """
        with self._lock:
            m = self._metrics[operation]
            m.count += 1
            m.total_duration_ms += duration_ms
            m.min_duration_ms = min(m.min_duration_ms, duration_ms)
            m.max_duration_ms = max(m.max_duration_ms, duration_ms)

            if success:
                m.success_count += 1
            else:
                m.error_count += 1
                m.last_error = _sanitize_error_message(error)
                m.last_error_time = datetime.now(timezone.utc)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every operation's totals with derived averages."""
        with self._lock:
            snapshot = {}
            for name, m in self._metrics.items():
                snapshot[name] = {
                    'count': m.count,
                    'success_count': m.success_count,
                    'error_count': m.error_count,
                    'success_rate': m.success_count / m.count if m.count else 0,
                    'avg_duration_ms': round(m.total_duration_ms / m.count, 2) if m.count else 0,
                    'min_duration_ms': round(m.min_duration_ms, 2) if m.count else 0,
                    'max_duration_ms': round(m.max_duration_ms, 2),
                    'last_error': m.last_error,
                    'last_error_time': m.last_error_time.isoformat() if m.last_error_time else None,
                }
            return snapshot

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context) -> Iterator[Dict[str, Any]]:
    """Time the enclosed block and record it under ``operation``.

    The yielded dict collects result details (``result_count`` and the like)
    that are appended to the END log line. Exceptions are recorded as
    failures and re-raised.
    """
    correlation_id = uuid.uuid4().hex[:8]
    start = time.perf_counter()
    result_info: Dict[str, Any] = {}

    context_str = ', '.join(f'{k}={v}' for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    error_msg = None
    try:
        yield result_info
    except Exception as e:
        error_msg = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.record_operation(operation, duration_ms, error_msg is None, error_msg)

        result_str = ', '.join(f'{k}={v}' for k, v in result_info.items())
        status = 'OK' if error_msg is None else f'ERROR: {error_msg}'
        logger.debug(
            f"[{correlation_id}] END {operation} "
            f"({duration_ms:.2f}ms) [{status}] {result_str}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Wrap a store method in :func:`timed_operation`.

    The note path, taken from a ``path`` keyword or the first positional
    argument after ``self``, is logged as context. List results add a
    ``result_count``.
    """
    def decorator(func: F) -> F:
        op_name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = {}
            if 'path' in kwargs:
                context['path'] = kwargs['path']
            elif len(args) > 1 and isinstance(args[1], (str, Path)):
                context['path'] = args[1]

            with timed_operation(op_name, **context) as op:
                result = func(*args, **kwargs)
                if isinstance(result, (list, tuple)):
                    op['result_count'] = len(result)
                return result

        return wrapper  # type: ignore
    return decorator
