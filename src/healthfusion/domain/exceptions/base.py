"""Root of the healthfusion exception tree."""
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional


class HealthFusionError(Exception):
    """Base exception for all healthfusion errors.

    Carries a stable ``error_code`` plus free-form ``context`` and
    ``suggestions`` so the CLI can print something actionable.
    """

    default_code: ClassVar[str] = "HEALTHFUSION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context: Dict[str, Any] = dict(context or {})
        self.suggestions: List[str] = list(suggestions or [])
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def add_context(self, key: str, value: Any) -> "HealthFusionError":
        if key:
            self.context[key] = value
        return self

    def add_suggestion(self, suggestion: str) -> "HealthFusionError":
        if suggestion:
            self.suggestions.append(suggestion)
        return self

    def _label(self) -> str:
        return self.message or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": dict(self.context),
            "suggestions": list(self.suggestions),
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        text = self._label()
        if not self.suggestions:
            return text
        return f"{text} -- Suggestions: {'; '.join(self.suggestions)}"


class ConfigurationError(HealthFusionError):
    """Bad settings value; ``config_field`` names the dotted key."""

    default_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, *, config_field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.config_field = config_field
        if config_field:
            self.add_context("config_field", config_field)

    def _label(self) -> str:
        text = super()._label()
        return f"[{self.config_field}] {text}" if self.config_field else text


class ResourceError(HealthFusionError):
    """A directory or file the run needs could not be created or opened."""

    default_code = "RESOURCE_ERROR"
