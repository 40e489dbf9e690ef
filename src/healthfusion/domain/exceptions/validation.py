"""Errors about the inputs handed to a run."""
from typing import Any, Optional

from .base import HealthFusionError


class ValidationError(HealthFusionError):
    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        if field_name:
            self.add_context("field_name", field_name)
        if field_value is not None:
            self.add_context("field_value", str(field_value))


class FileValidationError(ValidationError):
    """An input path exists but is not something we can read."""

    default_code = "FILE_VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        validation_type: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.file_path = file_path
        self.validation_type = validation_type
        if file_path:
            self.add_context("file_path", file_path)
        if validation_type:
            self.add_context("validation_type", validation_type)


class InputFileNotFoundError(FileValidationError):
    """Scan document or sensor file is missing."""

    default_code = "FILE_NOT_FOUND"

    def __init__(self, file_path: str, **kwargs):
        super().__init__(
            f"File not found: {file_path}",
            file_path=file_path,
            validation_type="existence_check",
            **kwargs,
        )
        self.add_suggestion("Check if the file path is correct and accessible")
