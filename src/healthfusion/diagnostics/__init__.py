"""Collection diagnostics and external score extraction."""

from .collection import (
    STATUS_FAILED,
    STATUS_OK,
    STATUS_PARTIAL,
    CollectionDiagnostics,
    analyze,
    apply_confidence_gating,
    extract_errors,
    extract_missing_data,
    extract_top_penalties,
)
from .external import extract_metadata, extract_score_data, parse_penalties

__all__ = [
    "STATUS_FAILED",
    "STATUS_OK",
    "STATUS_PARTIAL",
    "CollectionDiagnostics",
    "analyze",
    "apply_confidence_gating",
    "extract_errors",
    "extract_missing_data",
    "extract_top_penalties",
    "extract_metadata",
    "extract_score_data",
    "parse_penalties",
]
