"""Core configuration settings for healthfusion."""

import logging
from pathlib import Path
from typing import Optional, List, Tuple
from dataclasses import dataclass, field
from enum import Enum

from healthfusion.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

class LogLevel(Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

@dataclass
class NormalizationSettings:
    """Sensor validation rules that are open to tuning."""
    gpu_sentinel_checks: bool = False
    vram_slack: float = 0.10

    def validate(self) -> None:
        """Validate normalization settings."""
        if not 0.0 <= self.vram_slack <= 1.0:
            raise ConfigurationError(
                f"vram_slack must be between 0 and 1, got {self.vram_slack}",
                config_field="normalization.vram_slack"
            ).add_suggestion("Use a fraction such as 0.10 for 10% tolerance")

@dataclass
class ConfidenceSettings:
    """Inputs of the confidence model."""
    expected_sections: int = 8
    coverage_threshold: float = 0.7

    def validate(self) -> None:
        """Validate confidence settings."""
        if self.expected_sections <= 0:
            raise ConfigurationError(
                "expected_sections must be positive",
                config_field="confidence.expected_sections"
            )

        if not 0.0 <= self.coverage_threshold <= 1.0:
            raise ConfigurationError(
                f"coverage_threshold must be between 0 and 1, got {self.coverage_threshold}",
                config_field="confidence.coverage_threshold"
            )

@dataclass
class FusionSettings:
    """Weight tiers and caps of the score fusion formula."""
    high_confidence: int = 80
    medium_confidence: int = 60
    # (local, external) per tier
    high_weights: Tuple[float, float] = (0.6, 0.4)
    medium_weights: Tuple[float, float] = (0.5, 0.5)
    low_weights: Tuple[float, float] = (0.3, 0.7)
    logical_error_cap: int = 70
    missing_data_cap: int = 75
    missing_data_threshold: int = 3
    failed_collection_cap: int = 60

    def validate(self) -> None:
        """Validate fusion settings."""
        if not 0 <= self.medium_confidence <= self.high_confidence <= 100:
            raise ConfigurationError(
                "Confidence tiers must satisfy 0 <= medium <= high <= 100",
                config_field="fusion.high_confidence"
            )

        for name in ("high_weights", "medium_weights", "low_weights"):
            local, external = getattr(self, name)
            if local < 0 or external < 0 or abs(local + external - 1.0) > 1e-6:
                raise ConfigurationError(
                    f"{name} must be two non-negative weights summing to 1, got {(local, external)}",
                    config_field=f"fusion.{name}"
                ).add_suggestion("Example: (0.6, 0.4)")

        for name in ("logical_error_cap", "missing_data_cap", "failed_collection_cap"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigurationError(
                    f"{name} must be between 0 and 100, got {value}",
                    config_field=f"fusion.{name}"
                )

@dataclass
class ProcessingSettings:
    """Batch processing configuration."""
    extensions: Tuple[str, ...] = (".json",)
    sensor_suffix: str = ".sensors.json"
    show_progress: bool = True
    continue_on_error: bool = True

    def validate(self) -> None:
        """Validate processing settings."""
        if not self.extensions:
            raise ConfigurationError(
                "At least one input extension is required",
                config_field="processing.extensions"
            )

        if not self.sensor_suffix:
            raise ConfigurationError(
                "sensor_suffix must not be empty",
                config_field="processing.sensor_suffix"
            )

@dataclass
class OutputSettings:
    """Output-related configuration."""
    output_path: Optional[Path] = None
    json_output: bool = False
    indent: int = 2
    include_snapshot: bool = False

    def validate(self) -> None:
        """Validate output settings."""
        if self.indent < 0:
            raise ConfigurationError(
                "indent must be non-negative",
                config_field="output.indent"
            )

        if self.output_path and not self.output_path.parent.exists():
            raise ConfigurationError(
                f"Output directory does not exist: {self.output_path.parent}",
                config_field="output.output_path"
            ).add_suggestion("Create the directory or use a different path")

@dataclass
class LoggingSettings:
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    log_dir: Optional[Path] = None
    console_output: bool = True
    quiet_console: bool = False

    def validate(self) -> None:
        """Validate logging settings."""
        if self.log_dir and self.log_dir.exists() and not self.log_dir.is_dir():
            raise ConfigurationError(
                f"Log path is not a directory: {self.log_dir}",
                config_field="logging.log_dir"
            ).add_suggestion("Point --log-dir at a directory")

@dataclass
class Settings:
    """Everything one healthfusion run needs, grouped by concern."""

    normalization: NormalizationSettings = field(default_factory=NormalizationSettings)
    confidence: ConfidenceSettings = field(default_factory=ConfidenceSettings)
    fusion: FusionSettings = field(default_factory=FusionSettings)
    processing: ProcessingSettings = field(default_factory=ProcessingSettings)
    output: OutputSettings = field(default_factory=OutputSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    # what to read
    input_files: List[Path] = field(default_factory=list)
    input_directory: Optional[Path] = None
    recursive: bool = False

    debug_mode: bool = False
    dry_run: bool = False

    def sections(self) -> Tuple[object, ...]:
        return (self.normalization, self.confidence, self.fusion,
                self.processing, self.output, self.logging)

    def validate(self) -> None:
        """Validate every section, then the input selection."""
        try:
            for section in self.sections():
                section.validate()
            self._check_inputs()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

    def _check_inputs(self) -> None:
        if self.input_files and self.input_directory is not None:
            raise ConfigurationError(
                "Cannot use both input_files and input_directory",
                config_field="input_sources",
            ).add_suggestion("Pass scan files or --input-dir, not both")
        if self.input_files:
            return
        if self.input_directory is None:
            raise ConfigurationError(
                "No scan documents selected",
                config_field="input_sources",
            ).add_suggestion("Pass one or more scan files or --input-dir")

        directory = self.input_directory
        if not directory.exists():
            raise ConfigurationError(f"Input directory does not exist: {directory}",
                                     config_field="input_directory")
        if not directory.is_dir():
            raise ConfigurationError(f"Not a directory: {directory}",
                                     config_field="input_directory")

    def to_dict(self) -> dict:
        """Plain view of the settings for ``--debug`` output."""
        fusion = self.fusion
        out_path = self.output.output_path
        return {
            "normalization": {
                "gpu_sentinel_checks": self.normalization.gpu_sentinel_checks,
                "vram_slack": self.normalization.vram_slack,
            },
            "confidence": {
                "expected_sections": self.confidence.expected_sections,
                "coverage_threshold": self.confidence.coverage_threshold,
            },
            "fusion": {
                "high_confidence": fusion.high_confidence,
                "medium_confidence": fusion.medium_confidence,
                "weights": {
                    tier: list(getattr(fusion, f"{tier}_weights"))
                    for tier in ("high", "medium", "low")
                },
                "caps": {
                    "logical_error": fusion.logical_error_cap,
                    "missing_data": fusion.missing_data_cap,
                    "failed_collection": fusion.failed_collection_cap,
                },
            },
            "processing": {
                "extensions": list(self.processing.extensions),
                "sensor_suffix": self.processing.sensor_suffix,
                "show_progress": self.processing.show_progress,
                "continue_on_error": self.processing.continue_on_error,
            },
            "output": {
                "output_path": str(out_path) if out_path else None,
                "json_output": self.output.json_output,
                "indent": self.output.indent,
            },
            "runtime": {
                "input_files": [str(p) for p in self.input_files],
                "input_directory": str(self.input_directory) if self.input_directory else None,
                "recursive": self.recursive,
                "debug_mode": self.debug_mode,
                "dry_run": self.dry_run,
            },
        }


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the settings installed by ``set_settings``."""
    if _settings is None:
        raise ConfigurationError(
            "Settings not initialized; call set_settings() first"
        ).add_suggestion("Build a Settings object at startup")
    return _settings


def set_settings(settings: Settings) -> None:
    """Validate ``settings`` and install them for the process."""
    global _settings
    settings.validate()
    _settings = settings
    logger.info("Configuration validated")
