"""Errors raised at the scan-document boundary."""
from typing import Optional

from .base import HealthFusionError


class DocumentParseError(HealthFusionError):
    """Raised when a top-level scan document cannot be turned into a mapping.

    This is the only fatal input condition. The report builder catches it and
    produces a zero-score report carrying a ``PARSE_ERROR`` entry.
    """

    default_code = "PARSE_ERROR"

    def __init__(self, message: str, *, source_name: Optional[str] = None, position: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.position = position
        if source_name:
            self.add_context("source_name", source_name)
        if position is not None:
            self.add_context("position", position)
