"""
BOXOFFICE Observability

Structured logging for the dev network and the ticketing contracts.

Each record names the layer that emitted it and the correlation ID of the
command being run. Transaction fields (``tx_hash``, ``block``, ``sender``,
``reason``) are lifted out of the free-form context into top-level keys so a
JSON log can be filtered by transaction without parsing context.

    ┌─────────────────────────────────────────────────────────┐
    │  log.info("Ticket purchased", tx_hash=h, token_id=1)    │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │  BoxOfficeLogger  (boxoffice.<layer>.<component>)       │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │  StructuredHandler (json lines)  or  TextFormatter      │
    └─────────────────────────────────────────────────────────┘

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
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, TypeVar

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

ROOT_LOGGER_NAME = "boxoffice"

# Context keys promoted to top-level event fields.
TX_FIELDS: Tuple[str, ...] = ("tx_hash", "block", "sender", "reason")

_HANDLER_MARK = "_boxoffice"


class Layer(Enum):
    """Which part of the stack emitted a record."""
    CHAIN = "chain"
    DEPLOY = "deploy"
    CLI = "cli"


@dataclass
class LogEvent:
    timestamp: str
    level: str
    logger: str
    message: str
    layer: str = ""
    correlation_id: str = ""
    tx_hash: str = ""
    block: Optional[int] = None
    sender: str = ""
    reason: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Drop unset fields so each line only carries what was logged."""
        return {k: v for k, v in asdict(self).items() if v not in (None, "", {})}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


def split_context(context: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Separate transaction fields from the remaining context."""
    tx = {k: context[k] for k in TX_FIELDS if k in context}
    rest = {k: v for k, v in context.items() if k not in tx}
    return tx, rest


def event_from_record(record: logging.LogRecord) -> LogEvent:
    tx, rest = split_context(getattr(record, "context", {}))
    event = LogEvent(
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        level=record.levelname.lower(),
        logger=record.name,
        message=record.getMessage(),
        layer=getattr(record, "layer", ""),
        correlation_id=correlation_id_var.get(),
        operation=getattr(record, "operation", ""),
        duration_ms=getattr(record, "duration_ms", None),
        error_code=getattr(record, "error_code", ""),
        context=rest,
        **tx,
    )
    if record.exc_info:
        event.exception = "".join(traceback.format_exception(*record.exc_info))
    return event


class StructuredHandler(logging.Handler):
    """Writes one JSON object per record."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.stream.write(event_from_record(record).to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


class TextFormatter(logging.Formatter):
    """``<time> LEVEL logger: message key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            tx, rest = split_context(context)
            pairs = {**tx, **rest}
            line += " " + " ".join(f"{k}={v}" for k, v in pairs.items())
        return line


def configure_logging(
    level: str = "warning",
    fmt: str = "json",
    stream: Any = None,
) -> logging.Logger:
    """Install the package handler on the ``boxoffice`` logger.

    A handler from an earlier call is removed first, so the CLI can call this
    again once the configuration file has been read.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(numeric)

    for existing in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(existing)

    if fmt == "json":
        handler: logging.Handler = StructuredHandler(stream)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(TextFormatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    setattr(handler, _HANDLER_MARK, True)
    root.addHandler(handler)
    return root


class BoxOfficeLogger:
    """
    Logger bound to one component and layer.

    Keyword arguments passed to the level methods become structured context.
    Nothing is written until :func:`configure_logging` installs a handler.
    """

    def __init__(self, name: str, layer: Layer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{layer.value}.{name}")

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _emit(
        self,
        level: int,
        message: str,
        *,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={
                "layer": self.layer.value,
                "operation": operation,
                "error_code": error_code,
                "duration_ms": duration_ms,
                "context": context or {},
            },
        )

    def debug(self, message: str, **context: Any) -> None:
        self._emit(logging.DEBUG, message, context=context)

    def info(self, message: str, **context: Any) -> None:
        self._emit(logging.INFO, message, context=context)

    def warning(self, message: str, **context: Any) -> None:
        self._emit(logging.WARNING, message, context=context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._emit(logging.ERROR, message, error_code=error_code, exc_info=exc_info, context=context)

    def revert(self, message: str, reason: str, **context: Any) -> None:
        """A contract reverted. Expected during a sale, so logged at info."""
        self._emit(logging.INFO, message, error_code="TransactionReverted",
                   context={"reason": reason, **context})

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        self._emit(
            logging.INFO if success else logging.WARNING,
            f"Operation {name} {'completed' if success else 'failed'}",
            operation=name,
            duration_ms=round(duration_ms, 3),
            context=context,
        )


def generate_correlation_id() -> str:
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Return the current correlation ID, allocating one on first use."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, layer: Layer) -> BoxOfficeLogger:
    return BoxOfficeLogger(name, layer)


@contextmanager
def operation_timer(logger: BoxOfficeLogger, name: str, **context: Any) -> Iterator[None]:
    """Log how long the enclosed block took and whether it raised."""
    start = time.monotonic()
    try:
        yield
    except Exception:
        logger.operation(name, (time.monotonic() - start) * 1000, False, **context)
        raise
    logger.operation(name, (time.monotonic() - start) * 1000, True, **context)


T = TypeVar("T")


def timed_operation(
    logger: BoxOfficeLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of :func:`operation_timer`."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with operation_timer(logger, operation_name):
                return func(*args, **kwargs)
        return wrapper
    return decorator
