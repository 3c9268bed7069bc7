"""
Structured JSON logging for the fiscal engines.

Every record under the ``fiscal`` logger is written as one JSON line.
Amounts are rendered as plain decimal strings so no cent is lost, and
the document or period being processed is attached from ``LogContext``:

    with LogContext.bind(document_id="F-2024-017", document_type="invoice"):
        resolve_line_item(total, vat_rate=21)   # every record carries both

Engines log under ``get_logger("engines.<module>")``; applications call
``configure_logging()`` once at start-up.
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

# ---------------------------------------------------------------------------
# Document context
# ---------------------------------------------------------------------------

CONTEXT_FIELDS = ("document_id", "document_type", "period")

_context: ContextVar[Mapping[str, str]] = ContextVar("fiscal_log_context", default={})


def _merged(fields: Mapping[str, str | None]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
    merged = dict(_context.get())
    merged.update((k, v) for k, v in fields.items() if v is not None)
    return merged


class LogContext:
    """Document and period fields attached to every fiscal log record.

    Fields passed as ``None`` leave the current value untouched, so an
    engine can bind whatever its caller supplied without clobbering an
    outer binding.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Add fields for the duration of a ``with`` block."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> str:
    if isinstance(value, Decimal):
        # "1000000.00", never "1.00000000E+6"
        return format(value, "f")
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    """``exc_*`` fields; FiscalError subclasses add their code and attributes."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    fields.update(
        (f"exc_{k}", v) for k, v in vars(exc).items() if not k.startswith("_")
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """Envelope, document context, ``extra`` fields and error, as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (k, v) for k, v in vars(record).items()
            if k not in _RECORD_ATTRS and k not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_error_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_ROOT = "fiscal"
_lock = threading.Lock()
_configured = False


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``fiscal`` namespace, e.g. ``fiscal.engines.resolver``."""
    return logging.getLogger(f"{_ROOT}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``fiscal`` logger; later calls are no-ops.

    ``level`` accepts a number or a name such as ``"DEBUG"``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        root = logging.getLogger(_ROOT)
        root.setLevel(level)
        root.propagate = False
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)
        _configured = True


def reset_logging() -> None:
    """Undo ``configure_logging``. FOR TESTING ONLY."""
    global _configured
    with _lock:
        root = logging.getLogger(_ROOT)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
        root.propagate = True
        _configured = False
