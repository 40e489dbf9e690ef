"""Utility functions and helpers."""

from .timing import timeit, section_timer
from .logging import setup_logging, default_log_dir
from .audit import (
    AuditEvent,
    AuditSink,
    MemoryAuditSink,
    LoggingAuditSink,
    TeeAuditSink,
    default_sink,
)

__all__ = [
    "timeit",
    "section_timer",
    "setup_logging",
    "default_log_dir",
    "AuditEvent",
    "AuditSink",
    "MemoryAuditSink",
    "LoggingAuditSink",
    "TeeAuditSink",
    "default_sink",
]
