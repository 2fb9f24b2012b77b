"""
Observability for latebind.

Structured logging for resolve passes. Resolver events are emitted either
as JSON lines (JSONLogger) or as plain key=value records (KeyValueLogger),
both through the standard logging module so applications keep control of
handlers and levels.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol


# =============================================================================
# Log Levels
# =============================================================================


class LogLevel(Enum):
    """Standard log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# Structured Logger Protocol
# =============================================================================


class StructuredLogger(Protocol):
    """
    Protocol for structured logging implementations.

    Structured loggers emit logs as key-value pairs rather than
    plain strings, enabling better searchability and analysis.
    """

    def debug(self, message: str, **context: Any) -> None: ...

    def info(self, message: str, **context: Any) -> None: ...

    def warning(self, message: str, **context: Any) -> None: ...

    def error(self, message: str, **context: Any) -> None: ...


# =============================================================================
# Implementations
# =============================================================================


@dataclass
class JSONLogger:
    """
    Structured logger that outputs JSON-formatted logs.

    Example output:
        {"timestamp": "2026-01-02T10:30:00+00:00", "level": "warning",
         "message": "Load failed", "execution_id": "abc-123", "ref_name": "'db'"}
    """

    name: str = "latebind"
    extra_context: dict[str, Any] = field(default_factory=dict)
    _python_logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._python_logger = logging.getLogger(self.name)

    def _log(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "message": message,
            **self.extra_context,
            **context,
        }
        getattr(self._python_logger, level.value)(json.dumps(record, default=str))

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(LogLevel.ERROR, message, context)

    def with_context(self, **extra: Any) -> JSONLogger:
        """Create a new logger with additional context."""
        return JSONLogger(name=self.name, extra_context={**self.extra_context, **extra})


@dataclass
class KeyValueLogger:
    """Structured logger rendering context as ``message | key=value ...``."""

    name: str = "latebind"
    extra_context: dict[str, Any] = field(default_factory=dict)
    _python_logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._python_logger = logging.getLogger(self.name)

    def _log(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        merged = {**self.extra_context, **context}
        if merged:
            pairs = " | ".join(f"{k}={v}" for k, v in merged.items())
            message = f"{message} | {pairs}"
        getattr(self._python_logger, level.value)(message)

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(LogLevel.ERROR, message, context)

    def with_context(self, **extra: Any) -> KeyValueLogger:
        return KeyValueLogger(name=self.name, extra_context={**self.extra_context, **extra})


# =============================================================================
# Resolver Logger
# =============================================================================


@dataclass
class ResolverLogger:
    """
    Specialized logger for resolve passes.

    Example:
        log = ResolverLogger(inner=JSONLogger(name="latebind.resolver"))
        log = log.for_pass("3f2a9c1e")
        log.pass_started(binding_count=3, incremental=False)
        log.load_failed(ref_name="db", error=err)
        log.pass_completed(result_count=3, error_count=1, suspended=True, duration_ms=12.5)
    """

    inner: StructuredLogger = field(default_factory=KeyValueLogger)

    def for_pass(self, execution_id: str) -> ResolverLogger:
        with_context = getattr(self.inner, "with_context", None)
        if with_context is None:
            return self
        return ResolverLogger(inner=with_context(execution_id=execution_id))

    # Pass lifecycle
    def pass_started(self, binding_count: int, incremental: bool) -> None:
        self.inner.info(
            "Resolve pass started",
            binding_count=binding_count,
            incremental=incremental,
        )

    def pass_completed(
        self,
        result_count: int,
        error_count: int,
        suspended: bool,
        duration_ms: float,
    ) -> None:
        self.inner.info(
            "Resolve pass completed",
            result_count=result_count,
            error_count=error_count,
            suspended=suspended,
            duration_ms=round(duration_ms, 2),
        )

    # Per-binding failures
    def load_failed(self, ref_name: Any, error: BaseException) -> None:
        self.inner.warning(
            "Pending binding could not be loaded",
            ref_name=repr(ref_name),
            error=str(error),
            error_type=type(error).__name__,
        )

    def setter_failed(self, ref_name: Any, target: str, error: BaseException) -> None:
        self.inner.warning(
            "Setter could not be successfully invoked",
            ref_name=repr(ref_name),
            target=target,
            error=str(error),
            error_type=type(error).__name__,
        )

    def action_failed(self, ref_name: Any, target: str, error: BaseException) -> None:
        self.inner.warning(
            "Action could not be successfully invoked",
            ref_name=repr(ref_name),
            target=target,
            error=str(error),
            error_type=type(error).__name__,
        )

    def action_skipped(self, ref_name: Any, dedup_key: str | None, reason: str) -> None:
        self.inner.debug(
            "Action skipped",
            ref_name=repr(ref_name),
            dedup_key=dedup_key,
            reason=reason,
        )
