"""Validate single raw readings and turn them into NormalizedMetric values."""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Any, List, Optional, Tuple, Union

from healthfusion.models.metrics import (
    NormalizedMetric,
    Reason,
    create_available,
    create_unavailable,
)
from healthfusion.models.sensors import HardwareSensors, SensorReading

from .rules import SENTINEL_EPSILON, MetricRule, RuleSet

logger = logging.getLogger(__name__)

RawReading = Union[SensorReading, int, float, None]


def _unwrap(raw: RawReading) -> Tuple[Optional[Any], Optional[str]]:
    """Return (value, reason); reason is set when there is nothing to check."""
    if raw is None:
        return None, Reason.NOT_AVAILABLE
    if isinstance(raw, SensorReading):
        if not raw.available:
            return None, raw.reason or Reason.SENSOR_NOT_AVAILABLE
        if raw.value is None:
            return None, Reason.SENSOR_NOT_AVAILABLE
        return raw.value, None
    return raw, None


def check_rule(value: Any, rule: MetricRule) -> Optional[str]:
    """Reason the value breaks the rule, or None when it passes."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return Reason.UNSUPPORTED_VALUE_TYPE
    try:
        v = float(value)
    except OverflowError:
        return Reason.OUT_OF_RANGE
    if not math.isfinite(v):
        return Reason.NAN_OR_INFINITE
    if rule.reject_sentinel_zero and abs(v) < SENTINEL_EPSILON:
        return Reason.SENTINEL_ZERO
    if rule.reject_minus_one and abs(v + 1.0) < SENTINEL_EPSILON:
        return Reason.SENTINEL_MINUS_ONE
    if rule.minimum is not None and v < rule.minimum:
        return Reason.OUT_OF_RANGE
    if rule.maximum is not None and v > rule.maximum:
        return Reason.OUT_OF_RANGE
    return None


class MetricNormalizer:
    """Applies a RuleSet to raw readings. Never raises."""

    def __init__(self, rules: Optional[RuleSet] = None):
        self.rules = rules or RuleSet.default()

    def _normalize(
        self,
        raw: RawReading,
        rule: MetricRule,
        source: str,
        label: str,
        qualifier: Optional[str] = None,
    ) -> NormalizedMetric:
        value, reason = _unwrap(raw)
        if reason is None:
            reason = check_rule(value, rule)
            if reason is not None:
                logger.debug("%s rejected (%s): %r", label, reason, value)
        if reason is not None:
            return create_unavailable(rule.unit, source, reason, qualifier)
        return create_available(
            round(float(value), rule.precision), rule.unit, source, 100, qualifier
        )

    def normalize_cpu_temp(self, raw: RawReading, source: str = "LHM") -> NormalizedMetric:
        return self._normalize(raw, self.rules.cpu_temp, source, "cpu temperature")

    def normalize_gpu_temp(self, raw: RawReading, source: str = "LHM") -> NormalizedMetric:
        return self._normalize(raw, self.rules.gpu_temp, source, "gpu temperature")

    def normalize_disk_temp(
        self, raw: RawReading, disk_name: Optional[str], source: str = "LHM"
    ) -> NormalizedMetric:
        return self._normalize(
            raw, self.rules.disk_temp, source, "disk temperature", qualifier=disk_name
        )

    def normalize_percent(self, raw: RawReading, source: str, label: str = "percent") -> NormalizedMetric:
        return self._normalize(raw, self.rules.percent, source, label)

    def normalize_vram_total(self, raw: RawReading, source: str = "LHM") -> NormalizedMetric:
        rule = self.rules.vram_total
        value, reason = _unwrap(raw)
        if reason is None:
            reason = check_rule(value, rule)
            if reason is None and float(value) <= 0:
                reason = Reason.SENTINEL_ZERO_OR_NEGATIVE
        if reason is not None:
            logger.debug("vram total rejected (%s): %r", reason, value)
            return create_unavailable(rule.unit, source, reason)
        return create_available(round(float(value), rule.precision), rule.unit, source)

    def normalize_vram_used(
        self, raw: RawReading, total_mb: Optional[float], source: str = "LHM"
    ) -> NormalizedMetric:
        """Used VRAM; bounded by total plus slack when the total is known."""
        rule = self.rules.vram_used
        value, reason = _unwrap(raw)
        if reason is None:
            reason = check_rule(value, rule)
            if reason == Reason.OUT_OF_RANGE:
                reason = Reason.NEGATIVE_VALUE
        if reason is None and total_mb is not None and total_mb > 0:
            if float(value) > total_mb * (1.0 + self.rules.vram_slack):
                reason = Reason.VRAM_USED_EXCEEDS_TOTAL
        if reason is not None:
            logger.debug("vram used rejected (%s): %r (total %r)", reason, value, total_mb)
            return create_unavailable(rule.unit, source, reason)
        return create_available(round(float(value), rule.precision), rule.unit, source)

    def sanitize_sensors(
        self, sensors: Optional[HardwareSensors]
    ) -> Tuple[Optional[HardwareSensors], List[str]]:
        """Invalidate readings that claim to be available but break a rule.

        Returns the cleaned snapshot and one ``"<metric>: <reason>"`` entry per
        reading that was invalidated.
        """
        if sensors is None:
            return None, []

        invalidated: List[str] = []

        def _check(reading: SensorReading, metric: NormalizedMetric, name: str) -> SensorReading:
            if reading.available and not metric.available:
                invalidated.append(f"{name}: {metric.reason}")
                return reading.invalidated(metric.reason)
            return reading

        cpu = sensors.cpu
        if cpu is not None:
            cpu = replace(
                cpu,
                temp_c=_check(cpu.temp_c, self.normalize_cpu_temp(cpu.temp_c), "cpu.tempC"),
            )

        gpu = sensors.gpu
        if gpu is not None:
            total = self.normalize_vram_total(gpu.vram_total_mb)
            gpu = replace(
                gpu,
                temp_c=_check(gpu.temp_c, self.normalize_gpu_temp(gpu.temp_c), "gpu.tempC"),
                load_percent=_check(
                    gpu.load_percent,
                    self.normalize_percent(gpu.load_percent, "LHM", "gpu load"),
                    "gpu.loadPercent",
                ),
                vram_total_mb=_check(gpu.vram_total_mb, total, "gpu.vramTotalMB"),
                vram_used_mb=_check(
                    gpu.vram_used_mb,
                    self.normalize_vram_used(gpu.vram_used_mb, total.number),
                    "gpu.vramUsedMB",
                ),
            )

        disks = [
            replace(
                d,
                temp_c=_check(
                    d.temp_c,
                    self.normalize_disk_temp(d.temp_c, d.label),
                    f"disk[{i}].tempC",
                ),
            )
            for i, d in enumerate(sensors.disks)
        ]

        if invalidated:
            logger.info("Invalidated %d sensor reading(s): %s", len(invalidated), ", ".join(invalidated))
        return replace(sensors, cpu=cpu, gpu=gpu, disks=disks), invalidated
