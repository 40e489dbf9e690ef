"""Confidence model: how much of the picture did this scan actually see?"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from healthfusion.models.external import ExternalScoreData, ScanError
from healthfusion.models.sensors import HardwareSensors

from .models import ConfidenceModel

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 80
MEDIUM_CONFIDENCE = 60

# (per item, budget); each budget is spent independently
COLLECTOR_ERROR_PENALTY = (3, 15)
TIMEOUT_PENALTY = (5, 15)
MISSING_DATA_PENALTY = (2, 10)
CRITICAL_ERROR_PENALTY = 3


def confidence_level(score: int) -> str:
    if score >= HIGH_CONFIDENCE:
        return "High"
    if score >= MEDIUM_CONFIDENCE:
        return "Medium"
    return "Low"


def _capped(count: int, rule) -> int:
    per_item, budget = rule
    return min(count * per_item, budget)


class ConfidenceCalculator:
    """Start at 100 and subtract one penalty per gap in the collected data."""

    def __init__(self, expected_sections: int = 8, coverage_threshold: float = 0.7):
        self.expected_sections = expected_sections
        self.coverage_threshold = coverage_threshold

    @classmethod
    def from_settings(cls, settings) -> "ConfidenceCalculator":
        return cls(settings.expected_sections, settings.coverage_threshold)

    def _sensor_penalties(self, sensors: Optional[HardwareSensors], warnings: List[str]) -> int:
        if sensors is None:
            warnings.append("Hardware sensors unavailable")
            return 20

        penalty = 0
        if sensors.cpu is None or not sensors.cpu.temp_c.available:
            penalty += 8
            warnings.append("CPU temperature unavailable")

        gpu = sensors.gpu
        if gpu is None or not gpu.temp_c.available:
            penalty += 5
            warnings.append("GPU temperature unavailable")
        if gpu is None or not (gpu.vram_total_mb.available and gpu.vram_used_mb.available):
            penalty += 3
            warnings.append("VRAM usage unavailable")
        if gpu is None or not gpu.load_percent.available:
            penalty += 2
            warnings.append("GPU load unavailable")

        if sensors.disks and not any(d.temp_c.available for d in sensors.disks):
            penalty += 5
            warnings.append(f"No disk temperature for {len(sensors.disks)} disk(s)")
        return penalty

    def compute(
        self,
        *,
        sections_with_data: int,
        sensors: Optional[HardwareSensors],
        external: ExternalScoreData,
        partial_failure: bool = False,
        collector_errors_logical: int = 0,
        missing_data: Sequence[str] = (),
        errors: Sequence[ScanError] = (),
    ) -> ConfidenceModel:
        warnings: List[str] = []
        score = 100

        if self.expected_sections > 0:
            sections_coverage = min(1.0, sections_with_data / self.expected_sections)
        else:
            sections_coverage = 0.0

        if sensors is None:
            available, total = 0, HardwareSensors.TRACKED_SENSORS
        else:
            available, total = sensors.availability_summary()
        sensors_coverage = available / total if total > 0 else 0.0

        score -= self._sensor_penalties(sensors, warnings)

        if partial_failure:
            score -= 10
            warnings.append("External scan reported a partial failure")

        if sections_coverage < self.coverage_threshold:
            score -= 8
            warnings.append(f"Low section coverage ({sections_coverage:.0%})")

        collector_errors = collector_errors_logical if collector_errors_logical > 0 else external.breakdown.collector_errors
        if collector_errors > 0:
            score -= _capped(collector_errors, COLLECTOR_ERROR_PENALTY)
            warnings.append(f"{collector_errors} collector error(s)")

        timeouts = external.breakdown.timeouts
        if timeouts > 0:
            score -= _capped(timeouts, TIMEOUT_PENALTY)
            warnings.append(f"{timeouts} collector timeout(s)")

        if missing_data:
            score -= _capped(len(missing_data), MISSING_DATA_PENALTY)
            warnings.append(f"{len(missing_data)} missing data item(s)")

        critical = sum(1 for e in errors if e.is_critical)
        if critical:
            score -= critical * CRITICAL_ERROR_PENALTY
            warnings.append(f"{critical} critical collection error(s)")

        score = max(0, min(100, score))
        logger.debug("Confidence %d (%d warning(s))", score, len(warnings))
        return ConfidenceModel(
            sections_coverage=round(sections_coverage, 3),
            sensors_coverage=round(sensors_coverage, 3),
            sensors_available=available,
            sensors_total=total,
            confidence_score=score,
            confidence_level=confidence_level(score),
            warnings=warnings,
        )
