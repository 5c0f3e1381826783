"""
Module: costing_kernel.logging_config
Responsibility: Structured JSON logging for project cost tracking.
Architecture position: Kernel.  May import from domain/rounding.py only.

Every record is rendered as one JSON object per line.  The envelope:

    ts, level, logger, message     always present
    correlation_id, actor_id,
    project_id, entry_id,
    cost_type                      ambient, from LogContext.bind()
    action, phase                  parsed from ``cost_entry_<action>_<phase>``
    cost_type, entry_id,
    result_entry_id, total         mutation fields from ``extra``
    delta, balance                 stock adjustment fields from ``extra``
    exc_type, exc_message,
    exc_code, exc_<attr>,
    traceback                      when the record carries an exception

Mutation and stock fields are normalized: enum members become their value,
UUIDs become strings, ``total`` is rendered as money (two decimals) and
quantities in plain notation ("-10", "2.5").  Any other ``extra`` key is
appended as given.
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
import re
import sys
import threading
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from costing_kernel.domain.rounding import round_money

_LOGGER_PREFIX = "costing_kernel"


# ---------------------------------------------------------------------------
# Ambient context
# ---------------------------------------------------------------------------


class LogContext:
    """
    Request-scoped fields stamped on every record.

    Held as one immutable mapping in a ContextVar, so a binding made inside
    a mutation never leaks into another thread or task.
    """

    FIELDS = ("correlation_id", "actor_id", "project_id", "entry_id", "cost_type")

    _fields: ContextVar[Mapping[str, str]] = ContextVar("costing_log_context", default={})

    @classmethod
    def _merged(cls, values: Mapping[str, Any]) -> dict[str, str]:
        merged = dict(cls._fields.get())
        for name, value in values.items():
            if name not in cls.FIELDS:
                raise KeyError(f"Unknown log context field: {name}")
            if value is not None:
                merged[name] = _context_text(value)
        return merged

    @classmethod
    def set(cls, **values: Any) -> None:
        """Set fields for the rest of the current context. None leaves a field as is."""
        cls._fields.set(cls._merged(values))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(cls._fields.get())

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    def bind(cls, **values: Any) -> "_Binding":
        """Context manager: set fields on entry, restore the previous set on exit."""
        return _Binding(values)


class _Binding:

    def __init__(self, values: Mapping[str, Any]):
        self._values = values
        self._token = None

    def __enter__(self) -> type[LogContext]:
        self._token = LogContext._fields.set(LogContext._merged(self._values))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        LogContext._fields.reset(self._token)


def _context_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


# ---------------------------------------------------------------------------
# Field normalization
# ---------------------------------------------------------------------------

_FIXED_KEYS = ("ts", "level", "logger", "message")

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}

_MUTATION_EVENT = re.compile(
    r"^cost_entry_(?P<action>create|update|remove)_"
    r"(?P<phase>started|committed|rolled_back|conflict)$"
)


def _plain_quantity(value: Any) -> Any:
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        text = format(value.normalize(), "f")
        return "0" if text in ("-0", "0") else text
    return value


def _money(value: Any) -> Any:
    if isinstance(value, Decimal) and value.is_finite():
        return str(round_money(value))
    return value


def _identifier(value: Any) -> Any:
    return str(value) if isinstance(value, UUID) else value


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


_NORMALIZERS = {
    "cost_type": _enum_value,
    "entry_id": _identifier,
    "result_entry_id": _identifier,
    "total": _money,
    "delta": _plain_quantity,
    "balance": _plain_quantity,
}


class _JSONEncoder(json.JSONEncoder):

    def default(self, obj: Any) -> Any:
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """Render a record as one JSON line with the cost-tracking envelope."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        payload.update(LogContext.get_all())

        event = _MUTATION_EVENT.match(message)
        if event is not None:
            payload["action"] = event["action"]
            payload["phase"] = event["phase"]

        # explicit extras win over ambient context
        for key, value in vars(record).items():
            if key in _STDLIB_KEYS or key in _FIXED_KEYS:
                continue
            normalize = _NORMALIZERS.get(key)
            payload[key] = normalize(value) if normalize else value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for name, value in vars(exc).items():
            if name.startswith("_") or name == "code":
                continue
            fields[f"exc_{name}"] = _enum_value(value)
        return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the costing_kernel namespace, e.g. ``modules.project_costs.service``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one structured handler to the costing_kernel logger.

    Idempotent: only the first call takes effect until reset_logging().
    ``level`` accepts a number or a name such as ``config.logging.level``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    root.addHandler(handler)


def reset_logging() -> None:
    """Drop the structured handler and allow configure_logging() again.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    for handler in list(root.handlers):
        if isinstance(handler.formatter, StructuredFormatter):
            root.removeHandler(handler)
    root.setLevel(logging.WARNING)
