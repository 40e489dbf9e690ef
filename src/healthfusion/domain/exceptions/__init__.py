"""Custom exceptions for the healthfusion package."""

# Base exceptions
from .base import (
    HealthFusionError,
    ConfigurationError,
    ResourceError,
)

# Document boundary
from .parsing import DocumentParseError

# Processing exceptions
from .processing import ProcessingError

# Validation exceptions
from .validation import (
    ValidationError,
    FileValidationError,
    InputFileNotFoundError,
)

__all__ = [
    # Base
    "HealthFusionError",
    "ConfigurationError",
    "ResourceError",

    # Parsing
    "DocumentParseError",

    # Processing
    "ProcessingError",

    # Validation
    "ValidationError",
    "FileValidationError",
    "InputFileNotFoundError",
]
