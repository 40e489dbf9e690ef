"""Batch processing exceptions."""
from typing import Optional

from .base import HealthFusionError


class ProcessingError(HealthFusionError):
    """Raised when the batch runner cannot complete."""

    default_code = "PROCESSING_ERROR"

    def __init__(self, message: str, *, stage: Optional[str] = None, input_path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.stage = stage
        if stage:
            self.add_context("processing_stage", stage)
        if input_path:
            self.add_context("input_path", input_path)
