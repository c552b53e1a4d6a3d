"""Structured logging with context propagation."""

import json
import sys
import time
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, TextIO


# Context variables for log correlation
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_user_id: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LogEvent:
    """Structured log event."""

    level: str
    message: str
    timestamp: float = field(default_factory=time.time)
    logger: str = "sparkvibe"

    # Context
    request_id: Optional[str] = None
    user_id: Optional[str] = None

    # Additional fields
    extra: Dict[str, Any] = field(default_factory=dict)

    # Error info
    error_type: Optional[str] = None
    error_message: Optional[str] = None
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "level": self.level,
            "message": self.message,
            "timestamp": self.timestamp,
            "logger": self.logger,
        }

        if self.request_id:
            result["request_id"] = self.request_id
        if self.user_id:
            result["user_id"] = self.user_id
        if self.extra:
            result.update(self.extra)
        if self.error_type:
            result["error"] = {
                "type": self.error_type,
                "message": self.error_message,
                "stack_trace": self.stack_trace,
            }

        return result

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class StructuredLogger:
    """
    Structured logger with JSON or human-readable output.

    Events carry the request/user context set for the current task, so every
    line logged while serving one client call can be correlated.
    """

    def __init__(
        self,
        name: str = "sparkvibe",
        level: LogLevel = LogLevel.INFO,
        json_output: bool = False,
        stream: Optional[TextIO] = None,
    ):
        self.name = name
        self.level = level
        self.json_output = json_output
        self.stream = stream
        self._handlers: List[Callable[[LogEvent], None]] = []

    def _should_log(self, level: LogLevel) -> bool:
        """Check if level should be logged."""
        levels = list(LogLevel)
        return levels.index(level) >= levels.index(self.level)

    def _format(self, event: LogEvent) -> str:
        if self.json_output:
            return event.to_json()

        # Human-readable format
        ctx = []
        if event.request_id:
            ctx.append(f"req={event.request_id[:8]}")
        if event.user_id:
            ctx.append(f"user={event.user_id[:8]}")

        ctx_str = f"[{' '.join(ctx)}] " if ctx else ""
        output = f"{event.level} | {ctx_str}{event.message}"

        if event.extra:
            output += f" | {event.extra}"
        if event.error_type:
            output += f" | {event.error_type}: {event.error_message}"

        return output

    def _emit(self, event: LogEvent):
        """Emit log event."""
        stream = self.stream or sys.stderr
        print(self._format(event), file=stream, flush=True)

        for handler in self._handlers:
            handler(event)

    def add_handler(self, handler: Callable[[LogEvent], None]):
        """Add a log handler."""
        self._handlers.append(handler)

    def log(
        self,
        level: LogLevel,
        message: str,
        exception: Optional[BaseException] = None,
        **kwargs,
    ):
        """Log a message at the given level."""
        if not self._should_log(level):
            return

        event = LogEvent(
            level=level.value,
            message=message,
            logger=self.name,
            request_id=_request_id.get(),
            user_id=_user_id.get(),
            extra=kwargs,
        )

        if exception is not None:
            event.error_type = type(exception).__name__
            event.error_message = str(exception)
            if exception.__traceback__ is not None:
                event.stack_trace = "".join(traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                ))

        self._emit(event)

    def debug(self, message: str, **kwargs):
        self.log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self.log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, exception: Optional[BaseException] = None, **kwargs):
        self.log(LogLevel.WARNING, message, exception=exception, **kwargs)

    def error(self, message: str, exception: Optional[BaseException] = None, **kwargs):
        self.log(LogLevel.ERROR, message, exception=exception, **kwargs)

    def critical(self, message: str, exception: Optional[BaseException] = None, **kwargs):
        self.log(LogLevel.CRITICAL, message, exception=exception, **kwargs)


# Global logger instance
_logger: Optional[StructuredLogger] = None


def setup_structured_logging(
    name: str = "sparkvibe",
    level: LogLevel = LogLevel.INFO,
    json_output: bool = False,
    stream: Optional[TextIO] = None,
) -> StructuredLogger:
    """
    Setup structured logging.

    Args:
        name: Logger name
        level: Minimum log level
        json_output: Use JSON format
        stream: Output stream (stderr by default)

    Returns:
        Configured logger
    """
    global _logger
    _logger = StructuredLogger(name, level, json_output, stream)
    return _logger


def get_logger() -> StructuredLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = StructuredLogger()
    return _logger


@contextmanager
def request_context(request_id: Optional[str] = None, user_id: Optional[str] = None) -> Iterator[None]:
    """Set logging context for a block, restoring the previous values after."""
    request_token = _request_id.set(request_id) if request_id else None
    user_token = _user_id.set(user_id) if user_id else None
    try:
        yield
    finally:
        if request_token is not None:
            _request_id.reset(request_token)
        if user_token is not None:
            _user_id.reset(user_token)
