"""
Structured logging configuration for the classification relay.

This module provides:
- JSON-formatted logs for production
- Human-readable logs for development
- Request ID tracking across logs

Usage:
    from utils.logging import setup_logging, get_logger

    # Setup once at application startup
    setup_logging()

    # Get a logger for your module
    logger = get_logger(__name__)
    logger.info("Processing request", extra={"filename": "frame.jpg"})

    # In request handlers, use request_id context
    with request_context(request_id="abc-123"):
        logger.info("Handling request")  # Automatically includes request_id
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Optional

# Context variable for request ID tracking
_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return _request_id_ctx.get()


class RequestContextManager:
    """Context manager for request ID tracking."""

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id
        self.token: Optional[Token] = None

    def __enter__(self) -> str:
        if self.request_id is None:
            self.request_id = str(uuid.uuid4())[:8]
        self.token = _request_id_ctx.set(self.request_id)
        return self.request_id

    def __exit__(self, *args):
        _request_id_ctx.reset(self.token)


def request_context(request_id: Optional[str] = None) -> RequestContextManager:
    """
    Create a context manager for request ID tracking.

    Usage:
        with request_context() as request_id:
            logger.info("Processing")  # Includes request_id automatically
    """
    return RequestContextManager(request_id)


# LogRecord attributes that are not user-supplied "extra" fields
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName", "request_id",
))


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for production environments.

    Outputs logs in a structured JSON format suitable for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = get_request_id()
        if request_id:
            log_data["request_id"] = request_id

        log_data["location"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter for development.

    Includes colors for different log levels.
    """

    COLORS = {
        "DEBUG": "\033[36m",    # Cyan
        "INFO": "\033[32m",     # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
        "CRITICAL": "\033[35m", # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        level = f"{color}{record.levelname:8}{self.RESET}"

        request_id = get_request_id()
        req_str = f"[{request_id}] " if request_id else ""

        timestamp = datetime.now().strftime("%H:%M:%S")

        msg = f"{timestamp} {level} {req_str}{record.name}: {record.getMessage()}"

        if record.exc_info:
            msg += f"\n{self.formatException(record.exc_info)}"

        return msg


class RequestIDFilter(logging.Filter):
    """Filter that adds request_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    module_levels: Optional[dict[str, str]] = None,
) -> None:
    """
    Configure application logging.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for development)
        module_levels: Optional dict of module names to log levels
            Example: {"httpx": "WARNING", "uvicorn": "INFO"}
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.addFilter(RequestIDFilter())

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ConsoleFormatter())

    root_logger.addHandler(handler)

    if module_levels:
        for module, mod_level in module_levels.items():
            logging.getLogger(module).setLevel(getattr(logging, mod_level.upper()))

    # Quiet down noisy third-party loggers by default
    default_quiet = {
        "httpx": "WARNING",
        "httpcore": "WARNING",
        "google_genai": "WARNING",
        "google_genai.models": "WARNING",
        "multipart": "WARNING",  # Multipart form parsing spam
        "multipart.multipart": "WARNING",
        "python_multipart": "WARNING",
    }
    for module, mod_level in default_quiet.items():
        if module_levels is None or module not in module_levels:
            logging.getLogger(module).setLevel(getattr(logging, mod_level.upper()))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name, typically __name__

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


# Paths to skip logging at DEBUG level (device health polls flood the terminal)
_SKIP_LOG_PATHS_DEBUG = {"/health"}


async def logging_middleware_helper(request, call_next):
    """
    Helper for creating FastAPI logging middleware.

    Usage in api/server.py:
        from utils.logging import logging_middleware_helper

        @app.middleware("http")
        async def logging_middleware(request, call_next):
            return await logging_middleware_helper(request, call_next)
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

    with request_context(request_id):
        logger = get_logger("api.request")
        path = request.url.path

        is_debug = logging.getLogger().level <= logging.DEBUG
        skip_logging = is_debug and path in _SKIP_LOG_PATHS_DEBUG

        if not skip_logging:
            logger.info(
                f"{request.method} {path}",
                extra={
                    "method": request.method,
                    "path": path,
                    "client": request.client.host if request.client else None,
                }
            )

        start_time = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        if not skip_logging:
            logger.info(
                f"{request.method} {path} -> {response.status_code} ({duration_ms:.0f}ms)",
                extra={
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                }
            )

        response.headers["X-Request-ID"] = request_id

        return response
