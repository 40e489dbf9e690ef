"""Collection diagnostics: how complete and trustworthy was this scan?

The external document reports its own errors, missing data and top
penalties in a few loosely specified shapes; the hardware sensors may claim
readings that do not survive validation. ``analyze`` folds all of that into
one ``CollectionDiagnostics`` record and ``apply_confidence_gating`` uses it
to cap the confidence score.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, List, Mapping, Optional

from healthfusion.models.external import Penalty, ScanError
from healthfusion.models.sensors import HardwareSensors
from healthfusion.normalization import MetricNormalizer
from healthfusion.resolution import coerce_string, get_value, lookup, try_string
from healthfusion.scoring.confidence import confidence_level
from healthfusion.scoring.models import ConfidenceModel

from .external import parse_penalties

logger = logging.getLogger(__name__)

STATUS_OK = "OK"
STATUS_PARTIAL = "PARTIAL"
STATUS_FAILED = "FAILED"

FAILED_LOGICAL_THRESHOLD = 3
CRITICAL_MISSING_KEYWORDS = ("cpu", "gpu", "memory", "disk")


@dataclass
class CollectionDiagnostics:
    errors: List[ScanError] = field(default_factory=list)
    missing_data: List[str] = field(default_factory=list)
    top_penalties: List[Penalty] = field(default_factory=list)
    invalidated_metrics: List[str] = field(default_factory=list)
    collector_errors_logical: int = 0
    collection_status: str = STATUS_OK
    status_message: str = ""
    sanitized_sensors: Optional[HardwareSensors] = None


def extract_errors(root: Mapping) -> List[ScanError]:
    raw = lookup(root, "errors")
    if not isinstance(raw, list):
        return []
    errors = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        errors.append(
            ScanError(
                code=try_string(item, "code") or "",
                message=try_string(item, "message", "msg") or "",
                section=try_string(item, "section") or "",
                exception_type=try_string(item, "exceptionType") or "",
            )
        )
    return errors


def _describe(key: str, value: Any) -> str:
    if value is True:
        return f"{key}: missing"
    if value is False:
        return f"{key}: disabled"
    text = coerce_string(value)
    if text is None:
        return f"{key}: {value}"
    return f"{key}: {text}"


def extract_missing_data(root: Mapping) -> List[str]:
    """``missingData`` as a list of ``"key: value"`` strings.

    Accepts a list of strings, a list of single-entry objects, or one object.
    """
    raw = lookup(root, "missingData")
    items: List[str] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, str):
                if item.strip():
                    items.append(item)
            elif isinstance(item, Mapping):
                items.extend(_describe(str(k), v) for k, v in item.items())
    elif isinstance(raw, Mapping):
        items.extend(_describe(str(k), v) for k, v in raw.items())
    return items


def extract_top_penalties(root: Mapping) -> List[Penalty]:
    score_v2 = lookup(root, "scoreV2")
    if not isinstance(score_v2, Mapping):
        return []
    return parse_penalties(get_value(score_v2, "topPenalties"))


def _status(logical: int, missing: int, invalid: int) -> str:
    if logical > FAILED_LOGICAL_THRESHOLD:
        return STATUS_FAILED
    if logical > 0 or missing > 0 or invalid > 0:
        return STATUS_PARTIAL
    return STATUS_OK


def _message(status: str, logical: int, missing: int, invalid: int) -> str:
    if status == STATUS_FAILED:
        return f"Collection failed ({logical} errors)"
    if status == STATUS_PARTIAL:
        return f"Partial collection ({missing} missing data items, {invalid} invalid metrics)"
    return "Complete collection"


def analyze(
    root: Mapping,
    sensors: Optional[HardwareSensors],
    normalizer: Optional[MetricNormalizer] = None,
) -> CollectionDiagnostics:
    normalizer = normalizer or MetricNormalizer()
    errors = extract_errors(root)
    missing = extract_missing_data(root)
    penalties = extract_top_penalties(root)
    sanitized, invalidated = normalizer.sanitize_sensors(sensors)

    logical = len(errors) + len(invalidated)
    status = _status(logical, len(missing), len(invalidated))
    message = _message(status, logical, len(missing), len(invalidated))
    logger.info(
        "Collection diagnostics: %s (errors=%d, missing=%d, invalid=%d)",
        status, len(errors), len(missing), len(invalidated),
    )
    return CollectionDiagnostics(
        errors=errors,
        missing_data=missing,
        top_penalties=penalties,
        invalidated_metrics=invalidated,
        collector_errors_logical=logical,
        collection_status=status,
        status_message=message,
        sanitized_sensors=sanitized,
    )


def apply_confidence_gating(model: ConfidenceModel, diagnostics: CollectionDiagnostics) -> ConfidenceModel:
    """Cap the confidence score by what went wrong during collection."""
    score = model.confidence_score
    warnings = list(model.warnings)
    logical = diagnostics.collector_errors_logical

    if logical > 5:
        score = min(score, 70)
        warnings.append(f"Confidence capped at 70: {logical} collector errors")
    elif logical > 0:
        score = min(score, 85)
        warnings.append(f"Confidence capped at 85: {logical} collector error(s)")

    critical_missing = [
        item for item in diagnostics.missing_data
        if any(k in item.lower() for k in CRITICAL_MISSING_KEYWORDS)
    ]
    if critical_missing:
        score = min(score, 75)
        warnings.append(f"Confidence capped at 75: critical data missing ({', '.join(critical_missing)})")

    invalid = len(diagnostics.invalidated_metrics)
    if invalid > 2:
        score = min(score, 65)
        warnings.append(f"Confidence capped at 65: {invalid} sensor metrics invalidated")

    if score != model.confidence_score:
        logger.debug("Confidence gated %d -> %d", model.confidence_score, score)
    return replace(model, confidence_score=score, confidence_level=confidence_level(score), warnings=warnings)
