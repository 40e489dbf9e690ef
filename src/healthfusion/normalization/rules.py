"""Per-kind validation rules for raw sensor readings."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class MetricRule:
    unit: str
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    reject_sentinel_zero: bool = False
    reject_minus_one: bool = False
    precision: int = 1


CPU_TEMP = MetricRule("°C", 5.0, 115.0, reject_sentinel_zero=True, reject_minus_one=True)
GPU_TEMP = MetricRule("°C", 5.0, 120.0)
DISK_TEMP = MetricRule("°C", 0.0, 90.0, reject_sentinel_zero=True)
PERCENT = MetricRule("%", 0.0, 100.0)
VRAM_TOTAL = MetricRule("MB", precision=0)
VRAM_USED = MetricRule("MB", minimum=0.0)

SENTINEL_EPSILON = 0.001


@dataclass(frozen=True)
class RuleSet:
    """Rules keyed by metric kind; swap a field to tune one kind."""
    cpu_temp: MetricRule = CPU_TEMP
    gpu_temp: MetricRule = GPU_TEMP
    disk_temp: MetricRule = DISK_TEMP
    percent: MetricRule = PERCENT
    vram_total: MetricRule = VRAM_TOTAL
    vram_used: MetricRule = VRAM_USED
    vram_slack: float = 0.10

    @classmethod
    def default(cls, gpu_sentinel_checks: bool = False, vram_slack: float = 0.10) -> "RuleSet":
        gpu = GPU_TEMP
        if gpu_sentinel_checks:
            gpu = replace(GPU_TEMP, reject_sentinel_zero=True, reject_minus_one=True)
        return cls(gpu_temp=gpu, vram_slack=vram_slack)

    @classmethod
    def from_settings(cls, settings) -> "RuleSet":
        return cls.default(
            gpu_sentinel_checks=settings.gpu_sentinel_checks,
            vram_slack=settings.vram_slack,
        )
