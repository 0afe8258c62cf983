"""
Structured JSON logging for the pharmacy kernel.

Every record under the ``pharmacy_kernel`` logger becomes one JSON line
carrying the message, the ``extra=`` fields of the call site, and the
operation context bound by the orchestrator (correlation id, actor, and
the order or medicine being reconciled).  Kernel exceptions logged with
``exc_info`` contribute their code and structured attributes as
``exc_*`` fields, so a refused sale or an over-supplied order can be
traced without parsing messages.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from functools import singledispatch
from typing import Any
from uuid import UUID

LOGGER_NAMESPACE = "pharmacy_kernel"

# ---------------------------------------------------------------------------
# Operation context
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = ("correlation_id", "actor_id", "operation", "order_id", "medicine_id")

_context_vars: dict[str, ContextVar[str | None]] = {
    field: ContextVar(f"pharmacy_log_{field}", default=None) for field in _CONTEXT_FIELDS
}


class LogContext:
    """Per-thread / per-task fields stamped on every kernel log line."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Set context fields.  ``None`` values leave a field untouched."""
        unknown = set(fields) - set(_CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        for field, value in fields.items():
            if value is not None:
                _context_vars[field].set(str(value))

    @staticmethod
    def get_all() -> dict[str, str]:
        """The bound fields, without the unset ones."""
        return {
            field: value
            for field, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a block, then restore them.

        Names that are not context fields are ignored so callers can pass
        an operation's arguments through unchanged.
        """
        tokens = [
            (_context_vars[field], _context_vars[field].set(str(value)))
            for field, value in fields.items()
            if value is not None and field in _context_vars
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON rendering
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


@singledispatch
def _jsonable(value: Any) -> Any:
    return str(value)


@_jsonable.register
def _(value: UUID) -> str:
    return str(value)


@_jsonable.register
def _(value: date) -> str:
    # Also covers datetime.
    return value.isoformat()


@_jsonable.register
def _(value: Decimal) -> str:
    # Money keeps its scale: "75.0000", never 75.0.
    return str(value)


@_jsonable.register
def _(value: Enum) -> Any:
    return value.value


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name != "code":
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Renders a record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RECORD_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_jsonable)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_setup_lock = threading.Lock()
_INSTALLED = "_pharmacy_structured_handler"


def get_logger(name: str) -> logging.Logger:
    """A child of the ``pharmacy_kernel`` logger."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Install the JSON handler on the kernel logger.

    Only the first call has an effect until ``reset_logging()``; later
    calls (one per orchestrator built from configuration) are no-ops.
    """
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    with _setup_lock:
        if any(getattr(h, _INSTALLED, False) for h in namespace.handlers):
            return
        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        setattr(installed, _INSTALLED, True)
        namespace.addHandler(installed)
        namespace.setLevel(level)
        namespace.propagate = False


def reset_logging() -> None:
    """Remove every handler from the kernel logger.  Used by tests."""
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    with _setup_lock:
        for installed in list(namespace.handlers):
            namespace.removeHandler(installed)
        namespace.setLevel(logging.WARNING)
