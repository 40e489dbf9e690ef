"""Structured audit sinks.

The assembler and the fusion engine report what they did through an injected
sink instead of a process-wide log, so a caller can capture the exact,
ordered trail for one scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, runtime_checkable


@dataclass(frozen=True)
class AuditEvent:
    component: str
    message: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        return f"[{self.component}] {self.message}"


@runtime_checkable
class AuditSink(Protocol):
    def record(self, component: str, message: str, **fields: Any) -> None:
        ...


class MemoryAuditSink:
    """Keeps events in arrival order."""

    def __init__(self) -> None:
        self.events: List[AuditEvent] = []

    def record(self, component: str, message: str, **fields: Any) -> None:
        self.events.append(AuditEvent(component, message, dict(fields)))

    def messages(self, component: str | None = None) -> List[str]:
        return [e.message for e in self.events if component is None or e.component == component]

    def clear(self) -> None:
        self.events.clear()


class LoggingAuditSink:
    """Forwards events to a standard logger."""

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG) -> None:
        self.logger = logger
        self.level = level

    def record(self, component: str, message: str, **fields: Any) -> None:
        if fields:
            self.logger.log(self.level, "[%s] %s %s", component, message, fields)
        else:
            self.logger.log(self.level, "[%s] %s", component, message)


class TeeAuditSink:
    """Fans one event out to several sinks."""

    def __init__(self, *sinks: AuditSink) -> None:
        self.sinks = sinks

    def record(self, component: str, message: str, **fields: Any) -> None:
        for sink in self.sinks:
            sink.record(component, message, **fields)


def default_sink(logger: logging.Logger) -> MemoryAuditSink:
    """Memory sink whose events are also mirrored to ``logger``."""
    return _MirroredMemorySink(logger)


class _MirroredMemorySink(MemoryAuditSink):
    def __init__(self, logger: logging.Logger) -> None:
        super().__init__()
        self._forward = LoggingAuditSink(logger)

    def record(self, component: str, message: str, **fields: Any) -> None:
        super().record(component, message, **fields)
        self._forward.record(component, message, **fields)
