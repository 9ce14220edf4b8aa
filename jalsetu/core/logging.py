"""Logging configuration for the JalSetu water assistant."""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .config import get_settings

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'taskName', 'message', 'asctime'
])


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-readable log files."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with level colours and a short context suffix."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        extra_info = ""
        if getattr(record, 'duration', None) is not None:
            extra_info += f" | {record.duration:.3f}s"
        if getattr(record, 'request_id', None):
            extra_info += f" | req:{record.request_id[:8]}"
        if getattr(record, 'provider', None):
            extra_info += f" | provider:{record.provider}"

        log_format = f"{timestamp} | {{levelname:8}} | {{name:24}} | {{message}}{extra_info}"

        if record.levelname in self.COLORS:
            log_format = f"{self.COLORS[record.levelname]}{log_format}{self.COLORS['RESET']}"

        formatter = logging.Formatter(log_format, style='{')
        return formatter.format(record)


def setup_logging(log_level: Optional[str] = None, enable_file_logging: Optional[bool] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        log_level: Overrides ``LOG_LEVEL`` from settings
        enable_file_logging: Overrides ``ENABLE_FILE_LOGGING`` from settings
    """
    if log_level is None or enable_file_logging is None:
        settings = get_settings()
        log_level = log_level or settings.log_level
        if enable_file_logging is None:
            enable_file_logging = settings.enable_file_logging
    level = log_level.upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level))
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "app.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        app_handler.setLevel(getattr(logging, level))
        app_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(app_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "error.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=10
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(error_handler)

        perf_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "performance.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        )
        perf_handler.setLevel(logging.INFO)
        perf_handler.setFormatter(StructuredFormatter())

        perf_logger = logging.getLogger("performance")
        perf_logger.addHandler(perf_handler)
        perf_logger.setLevel(logging.INFO)
        perf_logger.propagate = False

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured with level: {level}")
    if enable_file_logging:
        logger.info("File logging enabled: app.log, error.log, performance.log")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return logging.getLogger(name)


def get_performance_logger() -> logging.Logger:
    """Get the performance logger instance."""
    return logging.getLogger("performance")


class PerformanceMonitor:
    """Context manager that times an operation and logs start/finish."""

    def __init__(self, operation: str, logger: Optional[logging.Logger] = None, **kwargs):
        self.operation = operation
        self.logger = logger or get_performance_logger()
        self.extra_data = kwargs
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(
            f"Starting {self.operation}",
            extra={"operation": self.operation, "event": "start", **self.extra_data}
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        duration = self.end_time - self.start_time

        if exc_type is None:
            self.logger.info(
                f"Completed {self.operation}",
                extra={
                    "operation": self.operation,
                    "event": "complete",
                    "duration": duration,
                    "success": True,
                    **self.extra_data
                }
            )
        else:
            self.logger.error(
                f"Failed {self.operation}",
                extra={
                    "operation": self.operation,
                    "event": "error",
                    "duration": duration,
                    "success": False,
                    "error_type": exc_type.__name__,
                    "error_message": str(exc_val) if exc_val else None,
                    **self.extra_data
                }
            )

    @property
    def duration(self) -> Optional[float]:
        """Get the duration of the operation."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None


def log_performance_metric(
    operation: str,
    duration: float,
    success: bool = True,
    logger: Optional[logging.Logger] = None,
    **kwargs
) -> None:
    """Log a performance metric."""
    perf_logger = logger or get_performance_logger()

    perf_logger.info(
        f"Performance metric: {operation}",
        extra={
            "operation": operation,
            "duration": duration,
            "success": success,
            "metric_type": "performance",
            **kwargs
        }
    )


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration: float,
    request_id: str,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
    **kwargs
) -> None:
    """Log API request details."""
    logger = get_logger("api.requests")

    logger.info(
        f"{method} {path} - {status_code}",
        extra={
            "event_type": "api_request",
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration": duration,
            "request_id": request_id,
            "user_agent": user_agent,
            "ip_address": ip_address,
            **kwargs
        }
    )


def log_provider_call(
    provider: str,
    duration: float,
    outcome: str,
    status_code: Optional[int] = None,
    error: Optional[str] = None,
    **kwargs
) -> None:
    """Log the outcome of one outbound LLM provider call.

    ``outcome`` is ``ok`` or the classified error kind.
    """
    logger = get_logger("providers.calls")
    level = logging.INFO if outcome == "ok" else logging.WARNING

    logger.log(
        level,
        f"Provider {provider} call finished: {outcome}",
        extra={
            "event_type": "provider_call",
            "provider": provider,
            "duration": duration,
            "outcome": outcome,
            "status_code": status_code,
            "error": error,
            **kwargs
        }
    )


def log_database_operation(
    operation: str,
    collection: str,
    duration: float,
    success: bool,
    error: Optional[str] = None,
    **kwargs
) -> None:
    """Log database operation details."""
    logger = get_logger("database.operations")

    logger.debug(
        f"Database {operation} on {collection}",
        extra={
            "event_type": "database_operation",
            "operation": operation,
            "collection": collection,
            "duration": duration,
            "success": success,
            "error": error,
            **kwargs
        }
    )
