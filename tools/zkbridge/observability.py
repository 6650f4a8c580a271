"""
ZKBRIDGE Observability

Structured logging for the marshaling and dispatch core. Every log event
carries the layer, operation name and correlation ID of the boundary call
that produced it.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    Boundary Call                         │
    │  logger.info("msg", witness_count=n)   @timed_operation  │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                     BridgeLogger                         │
    │  Correlation IDs, layer tagging, structured context      │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                       Handlers                           │
    │       StructuredHandler (json) │ text StreamHandler      │
    └─────────────────────────────────────────────────────────┘

Witness values are secrets and are never logged. Sizes and counts are.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

# Context variable for call-scoped correlation
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class LogLevel(Enum):
    """Log severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class BridgeLayer(Enum):
    """ZKBRIDGE layers for categorization."""
    WITNESS = "witness"
    CODEC = "codec"
    SRS = "srs"
    EXECUTOR = "executor"
    DISPATCH = "dispatch"
    BACKEND = "backend"
    BOUNDARY = "boundary"
    CONFIG = "config"
    CLI = "cli"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                layer=getattr(record, "layer", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TextFormatter(logging.Formatter):
    """Single-line text format with the structured context appended."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = getattr(record, "context", None)
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
            base = f"{base} [{pairs}]"
        return base


def _make_handler(log_format: str) -> logging.Handler:
    if log_format == "text":
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(TextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        return handler
    return StructuredHandler()


class BridgeLogger:
    """
    Structured logger for ZKBRIDGE components.

    Includes correlation ID and layer information in all log events.
    """

    def __init__(
        self,
        name: str,
        layer: BridgeLayer,
        level: LogLevel = LogLevel.INFO,
        log_format: str = "json",
    ):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"zkbridge.{layer.value}.{name}")
        self._logger.setLevel(getattr(logging, level.value.upper()))

        if not any(getattr(h, "_zkbridge", False) for h in self._logger.handlers):
            handler = _make_handler(log_format)
            handler._zkbridge = True  # type: ignore[attr-defined]
            self._logger.addHandler(handler)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def critical(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.CRITICAL, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.INFO if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


def generate_correlation_id() -> str:
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID, creating one if unset."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, layer: BridgeLayer) -> BridgeLogger:
    """Get a logger configured from observability.* settings."""
    from tools.zkbridge.config import get_config

    obs = get_config().observability
    return BridgeLogger(
        name,
        layer,
        level=LogLevel(obs.log_level.get()),
        log_format=obs.log_format.get(),
    )


T = TypeVar("T")


def timed_operation(
    logger: BridgeLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator
