import os
import time
import json
import logging
import psutil
from tqdm import tqdm
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from healthfusion.config.settings import Settings
from healthfusion.config.resolvers import resolve_inputs, sensor_file_for
from healthfusion.domain.exceptions import (
    ConfigurationError,
    HealthFusionError,
    InputFileNotFoundError,
    ProcessingError,
    ValidationError,
)
from healthfusion.models.sensors import HardwareSensors
from healthfusion.reporting import HealthReportBuilder, ReportResult
from healthfusion.utils.timing import section_timer, timeit

logger = logging.getLogger(__name__)
summary_logger = logging.getLogger("healthfusion.summary")


@dataclass
class PipelineResult:
    """Batch execution result."""
    n_inputs: int
    n_succeeded: int = 0
    n_failed: int = 0
    reports: List[Tuple[Path, ReportResult]] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    output_path: Optional[str] = None
    processing_time: float = 0.0
    peak_memory_mb: float = 0.0
    timings: Dict[str, float] = field(default_factory=dict)


class FusionPipeline:
    """
    Batch runner: one health report per scan document.

    A document may be paired with a sensor snapshot named
    ``<stem>.sensors.json`` next to it. Unreadable inputs are recorded as
    failures and skipped unless ``processing.continue_on_error`` is off.
    """

    def __init__(self, settings: Settings, builder: Optional[HealthReportBuilder] = None):
        self.settings = settings
        self.builder = builder or HealthReportBuilder(settings)
        self.process = psutil.Process(os.getpid())
        self.timings: Dict[str, float] = {}
        self.peak_rss_mb = 0.0

    @timeit(logger, "fusion batch")
    def run(self) -> PipelineResult:
        """Execute the complete batch."""
        start = time.time()

        with section_timer("resolve_inputs", logger, self.timings):
            inputs = resolve_inputs(self.settings)
        summary_logger.info("[startup] Found %d scan document(s)", len(inputs))

        result = PipelineResult(n_inputs=len(inputs))
        show_progress = self.settings.processing.show_progress

        for path in tqdm(inputs, desc="Scans", unit="doc", disable=not show_progress):
            try:
                with section_timer("build_reports", logger, self.timings):
                    report = self.process_one(path)
            except HealthFusionError as e:
                if not self.settings.processing.continue_on_error:
                    raise
                logger.error("[batch] %s skipped: %s", path.name, e.message)
                result.failures[str(path)] = e.message
                result.n_failed += 1
                continue

            result.reports.append((path, report))
            result.n_succeeded += 1
            self._track_memory()

        if self.settings.output.output_path:
            with section_timer("write_output", logger, self.timings):
                result.output_path = str(self.write_output(result, self.settings.output.output_path))

        result.processing_time = time.time() - start
        result.peak_memory_mb = self.peak_rss_mb
        result.timings = dict(self.timings)
        self._log_summary(result)
        return result

    def process_one(self, path: Path) -> ReportResult:
        """Build the report for one scan document."""
        if not path.is_file():
            raise InputFileNotFoundError(str(path))
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ProcessingError(
                f"Cannot read scan document: {e}",
                stage="read_document",
                input_path=str(path),
            ) from e

        sensors = self._load_sensors(path)
        result = self.builder.build(raw, sensors=sensors, source_name=path.name)
        logger.info(
            "[batch] %s: %d (%s), collection %s",
            path.name, result.report.global_score, result.report.grade, result.report.collection_status,
        )
        return result

    def _load_sensors(self, path: Path) -> Optional[HardwareSensors]:
        sensor_path = sensor_file_for(path, self.settings.processing.sensor_suffix)
        if sensor_path is None:
            logger.debug("[batch] no sensor snapshot for %s", path.name)
            return None
        try:
            data = json.loads(sensor_path.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError) as e:
            logger.warning("[batch] ignoring unreadable sensor file %s: %s", sensor_path.name, e)
            return None
        if not isinstance(data, dict):
            raise ValidationError(
                f"Sensor snapshot must be a JSON object: {sensor_path}",
                field_name="sensors",
                field_value=type(data).__name__,
            ).add_suggestion("Regenerate the sensor snapshot")
        return HardwareSensors.from_dict(data)

    def write_output(self, result: PipelineResult, output_path: Path) -> Path:
        include_snapshot = self.settings.output.include_snapshot
        payload = {
            "reports": [
                {"input": str(path), **report.as_dict(include_snapshot=include_snapshot)}
                for path, report in result.reports
            ],
            "failures": dict(result.failures),
        }
        output_path = Path(output_path)
        try:
            output_path.write_text(
                json.dumps(payload, indent=self.settings.output.indent, ensure_ascii=False, default=str),
                encoding="utf-8",
            )
        except OSError as e:
            raise ProcessingError(
                f"Cannot write output: {e}",
                stage="write_output",
                input_path=str(output_path),
            ) from e
        summary_logger.info("[output] Wrote %d report(s) to %s", len(result.reports), output_path)
        return output_path

    def _track_memory(self) -> None:
        try:
            rss = self.process.memory_info().rss / 1e6  # MB
        except psutil.Error as e:
            logger.debug("[mem] Could not get memory info: %s", e)
            return
        self.peak_rss_mb = max(self.peak_rss_mb, rss)

    def _log_summary(self, result: PipelineResult) -> None:
        summary_logger.info("=" * 60)
        summary_logger.info("BATCH SUMMARY")
        summary_logger.info("=" * 60)
        summary_logger.info("Documents:        %d", result.n_inputs)
        summary_logger.info("Succeeded:        %d", result.n_succeeded)
        summary_logger.info("Failed:           %d", result.n_failed)
        summary_logger.info("Processing time:  %.2f s", result.processing_time)
        summary_logger.info("Peak memory:      %.1f MB", result.peak_memory_mb)
        for name, seconds in result.timings.items():
            summary_logger.info("  %-16s %.3f s", name, seconds)


def run_fusion_batch(settings: Settings) -> PipelineResult:
    """Entry point used by the CLI ``batch`` command."""
    if not settings.input_files and settings.input_directory is None:
        raise ConfigurationError(
            "No scan documents to process",
            config_field="input_sources",
        ).add_suggestion("Provide --input or --input-dir")
    return FusionPipeline(settings).run()
