"""Merge combinators for metrics fed by more than one source.

The two policies answer different questions and stay separate:
``first_available_wins`` picks a fallback, ``aggregate_max`` summarises.
"""

from __future__ import annotations

from typing import Iterable, Optional

from healthfusion.models.metrics import (
    NormalizedMetric,
    Reason,
    create_available,
    create_unavailable,
)
from healthfusion.models.snapshot import MetricGroup


def first_available_wins(
    current: Optional[NormalizedMetric], candidate: NormalizedMetric
) -> NormalizedMetric:
    """Keep ``current`` when it is available, otherwise take ``candidate``."""
    if current is not None and current.available:
        return current
    return candidate


def merge_into(group: MetricGroup, key: str, candidate: NormalizedMetric) -> bool:
    """Apply ``first_available_wins`` in place. True when the group changed."""
    current = group.get(key)
    merged = first_available_wins(current, candidate)
    if merged is current:
        return False
    group[key] = merged
    return True


def aggregate_max(
    metrics: Iterable[NormalizedMetric],
    unit: str,
    source: str,
    empty_reason: str = Reason.NO_VALID_DISK_TEMPS,
) -> NormalizedMetric:
    """Largest numeric value among the available metrics.

    The qualifier of the winning metric is carried over so the caller can
    tell which input produced the maximum.
    """
    best: Optional[NormalizedMetric] = None
    for metric in metrics:
        if not metric.available or metric.number is None:
            continue
        if best is None or metric.number > best.number:
            best = metric
    if best is None:
        return create_unavailable(unit, source, empty_reason)
    return create_available(best.value, unit, source, best.confidence, best.qualifier)
