"""Normalized metric model and its tagged value variant."""

from __future__ import annotations

import math
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union


class Reason:
    """Fixed vocabulary used for unavailable metrics."""
    NAN_OR_INFINITE = "nan_or_infinite"
    SENTINEL_ZERO = "sentinel_zero"
    SENTINEL_MINUS_ONE = "sentinel_minus_one"
    OUT_OF_RANGE = "out_of_range"
    SENTINEL_ZERO_OR_NEGATIVE = "sentinel_zero_or_negative"
    NEGATIVE_VALUE = "negative_value"
    VRAM_USED_EXCEEDS_TOTAL = "vram_used_exceeds_total"
    SENSOR_NOT_AVAILABLE = "sensor_not_available"
    NOT_AVAILABLE = "not_available"
    NOT_DETECTED = "not_detected"
    GPU_NOT_DETECTED = "gpu_not_detected"
    DISK_TEMP_NOT_AVAILABLE = "disk_temp_not_available"
    NO_VALID_DISK_TEMPS = "no_valid_disk_temps"
    PROPERTY_NOT_FOUND = "property_not_found"
    VALUE_NOT_COLLECTED = "value_not_collected"
    NOT_COLLECTED_BY_SCAN = "not_collected_by_scan"
    NO_TIMESTAMP_AVAILABLE = "no_timestamp_available"
    SIGNAL_UNAVAILABLE = "signal_unavailable"
    UNSUPPORTED_VALUE_TYPE = "unsupported_value_type"
    REASON_NOT_PROVIDED = "reason_not_provided"


class ValueKind(Enum):
    NUMBER = "number"
    STRING = "string"
    BOOL = "bool"
    TIMESTAMP = "timestamp"


Payload = Union[int, float, str, bool, datetime]


@dataclass(frozen=True)
class MetricValue:
    kind: ValueKind
    payload: Payload

    def as_number(self) -> Optional[float]:
        if self.kind is ValueKind.NUMBER:
            return float(self.payload)
        return None

    def as_python(self) -> Any:
        if self.kind is ValueKind.TIMESTAMP:
            return self.payload.isoformat()
        return self.payload

    def __str__(self) -> str:
        if self.kind is ValueKind.BOOL:
            return "true" if self.payload else "false"
        return str(self.as_python())


# ---- narrow typed converters ----

def number_value(raw: Any) -> Optional[MetricValue]:
    """Finite int/float only; bools are not numbers here."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    try:
        finite = math.isfinite(raw)
    except OverflowError:
        return None
    if not finite:
        return None
    return MetricValue(ValueKind.NUMBER, raw)


def string_value(raw: Any) -> Optional[MetricValue]:
    if not isinstance(raw, str):
        return None
    return MetricValue(ValueKind.STRING, raw)


def bool_value(raw: Any) -> Optional[MetricValue]:
    if not isinstance(raw, bool):
        return None
    return MetricValue(ValueKind.BOOL, raw)


def timestamp_value(raw: Any) -> Optional[MetricValue]:
    """Accepts a datetime or an ISO-8601 string."""
    if isinstance(raw, datetime):
        return MetricValue(ValueKind.TIMESTAMP, raw)
    if isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return MetricValue(ValueKind.TIMESTAMP, datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def to_metric_value(raw: Any) -> Optional[MetricValue]:
    """Dispatch a raw payload to the matching converter.

    Returns None for anything that is not a scalar the variant can hold.
    """
    if isinstance(raw, MetricValue):
        return raw
    if isinstance(raw, bool):
        return bool_value(raw)
    if isinstance(raw, (int, float)):
        return number_value(raw)
    if isinstance(raw, datetime):
        return timestamp_value(raw)
    if isinstance(raw, str):
        return string_value(raw)
    return None


@dataclass(frozen=True)
class NormalizedMetric:
    value: Optional[MetricValue]
    unit: str
    source: str
    confidence: int            # 0..100
    available: bool
    reason: Optional[str] = None
    qualifier: Optional[str] = None

    @property
    def number(self) -> Optional[float]:
        return self.value.as_number() if self.value is not None else None

    def is_consistent(self) -> bool:
        if self.available:
            return not self.reason and 0 <= self.confidence <= 100
        has_reason = isinstance(self.reason, str) and bool(self.reason.strip())
        return has_reason and self.confidence == 0

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["value"] = self.value.as_python() if self.value is not None else None
        d["kind"] = self.value.kind.value if self.value is not None else None
        return d


def create_available(
    value: Any,
    unit: str,
    source: str,
    confidence: int = 100,
    qualifier: Optional[str] = None,
) -> NormalizedMetric:
    converted = to_metric_value(value)
    if converted is None:
        return create_unavailable(unit, source, Reason.UNSUPPORTED_VALUE_TYPE, qualifier)
    return NormalizedMetric(
        value=converted,
        unit=unit,
        source=source,
        confidence=max(0, min(100, int(confidence))),
        available=True,
        qualifier=qualifier,
    )


def create_unavailable(
    unit: str,
    source: str,
    reason: Optional[str],
    qualifier: Optional[str] = None,
) -> NormalizedMetric:
    return NormalizedMetric(
        value=None,
        unit=unit,
        source=source,
        confidence=0,
        available=False,
        reason=reason or Reason.REASON_NOT_PROVIDED,
        qualifier=qualifier,
    )


def from_count(count: Optional[int], source: str, qualifier: Optional[str] = None) -> NormalizedMetric:
    if count is None:
        return create_unavailable("count", source, Reason.VALUE_NOT_COLLECTED, qualifier)
    return create_available(int(count), "count", source, 100, qualifier)


def from_timestamp(ts: Any, source: str) -> NormalizedMetric:
    converted = timestamp_value(ts) if ts is not None else None
    if converted is None:
        return create_unavailable("timestamp", source, Reason.NO_TIMESTAMP_AVAILABLE)
    return create_available(converted, "timestamp", source, 100)
