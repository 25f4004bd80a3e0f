"""
Structured JSON logging for the ledger kernel.

Every record under the ``ledger_kernel`` namespace is rendered as one JSON
object per line: a fixed envelope (``ts``, ``level``, ``logger``,
``message``), the bound context fields, the caller's ``extra`` fields and,
when an exception is attached, its type, message, machine-readable code and
public attributes.

Context fields (correlation, actor, journal entry, purchase order) live in
a single ContextVar holding an immutable mapping, so ``LogContext.bind`` is
safe across threads and asyncio tasks and always restores the outer scope.
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, TextIO
from uuid import UUID

NAMESPACE = "ledger_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "entry_id",
    "purchase_order_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar(
    "ledger_log_context", default=_EMPTY
)


def _merged(fields: dict[str, Any]) -> Mapping[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {sorted(unknown)}")
    current = dict(_context.get())
    current.update({k: str(v) for k, v in fields.items() if v is not None})
    return MappingProxyType(current)


class LogContext:
    """Request-scoped log fields shared by every logger in the namespace."""

    @staticmethod
    def set(**fields: Any) -> None:
        """Add fields to the current scope; ``None`` values are ignored."""
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return {k: v for k, v in _context.get().items()}

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Bind fields for the duration of a ``with`` block."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    logging.makeLogRecord({}).__dict__
) | {"message", "asctime", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = self._envelope(record)
        payload.update(LogContext.get_all())
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key in payload:
                continue
            payload[key] = value
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))
        return json.dumps(payload, default=_jsonable)

    @staticmethod
    def _envelope(record: logging.LogRecord) -> dict[str, Any]:
        return {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # LedgerKernelError subclasses keep their context as attributes
        for name, value in vars(exc).items():
            if name.startswith("_") or name in ("args", "code"):
                continue
            fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """Return ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_HANDLER_MARK = "_ledger_kernel_handler"


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one structured handler to the namespace logger.

    Later calls are no-ops while the installed handler is present, so
    library entry points can call this freely.
    """
    namespace = logging.getLogger(NAMESPACE)
    with _setup_lock:
        if any(getattr(h, _HANDLER_MARK, False) for h in namespace.handlers):
            return
        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.setFormatter(StructuredFormatter())
        setattr(installed, _HANDLER_MARK, True)
        namespace.addHandler(installed)
        namespace.setLevel(level)
        namespace.propagate = False


def reset_logging() -> None:
    """Remove the structured handler and restore defaults. Tests only."""
    namespace = logging.getLogger(NAMESPACE)
    with _setup_lock:
        for h in list(namespace.handlers):
            namespace.removeHandler(h)
        namespace.setLevel(logging.WARNING)
        namespace.propagate = True
