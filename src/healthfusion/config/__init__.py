"""Configuration management for healthfusion."""

from .settings import (
    Settings,
    NormalizationSettings,
    ConfidenceSettings,
    FusionSettings,
    ProcessingSettings,
    OutputSettings,
    LoggingSettings,
    LogLevel,
    get_settings,
    set_settings,
)
from .loader import ConfigurationLoader, configure_from_cli

__all__ = [
    "Settings",
    "NormalizationSettings",
    "ConfidenceSettings",
    "FusionSettings",
    "ProcessingSettings",
    "OutputSettings",
    "LoggingSettings",
    "LogLevel",
    "get_settings",
    "set_settings",
    "ConfigurationLoader",
    "configure_from_cli",
]
