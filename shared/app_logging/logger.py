"""
Standardized logging utilities for crusty-buffer services.
Provides structured logging with job IDs and consistent formatting.
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from shared.config.settings import get_settings

# Context variable for the job currently being processed
job_id_var: ContextVar[Optional[str]] = ContextVar("job_id", default=None)

NO_JOB = "-"

_RESERVED_ATTRS = frozenset(
    [
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "taskName",
        "exc_info", "exc_text", "stack_info", "job_id", "service_name",
    ]
)


class JobIDFilter(logging.Filter):
    """Logging filter to add the current job ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.job_id = job_id_var.get() or NO_JOB
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "job_id": getattr(record, "job_id", NO_JOB),
            "service": getattr(record, "service_name", "unknown"),
            "thread": record.threadName,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_entry:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class StructuredFormatter(logging.Formatter):
    """Structured formatter for human-readable logs."""

    def format(self, record: logging.LogRecord) -> str:
        job_id = getattr(record, "job_id", NO_JOB)
        service = getattr(record, "service_name", "unknown")

        # Format: [timestamp] [level] [service] [job_id] logger: message
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        base_msg = f"[{timestamp}] [{record.levelname}] [{service}] [{job_id}] {record.name}: {record.getMessage()}"

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


def setup_logging(
    service_name: str,
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    include_job_id: Optional[bool] = None,
) -> logging.Logger:
    """
    Set up standardized logging for a service.

    The service logger and the ``shared`` logger (used by the store and
    utility modules) share one handler.

    Args:
        service_name: Name of the service (e.g., 'archiver')
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to use JSON formatting
        include_job_id: Whether to include the current job ID

    Returns:
        Configured service logger
    """
    settings = get_settings()

    level = (log_level or settings.logging.level).upper()
    use_json = json_logs if json_logs is not None else settings.logging.json_logs
    with_job_id = include_job_id if include_job_id is not None else settings.logging.include_job_id

    handler = logging.StreamHandler()
    handler.setLevel(getattr(logging, level))
    handler.setFormatter(JSONFormatter() if use_json else StructuredFormatter())
    if with_job_id:
        handler.addFilter(JobIDFilter())

    for name in (service_name, "shared"):
        target = logging.getLogger(name)
        target.setLevel(getattr(logging, level))
        # Remove existing handlers to avoid duplicates
        for existing in target.handlers[:]:
            target.removeHandler(existing)
        target.addHandler(handler)
        target.propagate = False

    # Add service name to all log records
    old_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = old_factory(*args, **kwargs)
        record.service_name = service_name
        return record

    logging.setLogRecordFactory(record_factory)

    return logging.getLogger(service_name)


def get_logger(name: str) -> logging.Logger:
    """Get a logger by dotted name."""
    return logging.getLogger(name)


class JobContext:
    """Context manager binding a job ID to every log line inside it."""

    def __init__(self, job_id):
        self.job_id = str(job_id)
        self._token = None

    def __enter__(self) -> str:
        self._token = job_id_var.set(self.job_id)
        return self.job_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        job_id_var.reset(self._token)
