"""Read the external scanner's score and run metadata out of the document."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from healthfusion.models.external import (
    ExternalScoreData,
    Penalty,
    ScanMetadata,
    ScoreBreakdown,
)
from healthfusion.resolution import (
    coerce_int,
    coerce_string,
    get_value,
    lookup,
    try_bool,
    try_float,
    try_int,
    try_mapping,
    try_string,
)

logger = logging.getLogger(__name__)


def _penalty_from_mapping(item: Mapping, default_type: str = "", default_source: str = "") -> Penalty:
    return Penalty(
        type=try_string(item, "type") or default_type,
        source=try_string(item, "source", "section") or default_source,
        penalty=try_int(item, "penalty", "points") or 0,
        msg=try_string(item, "msg", "message") or "",
    )


def parse_penalties(raw: Any) -> List[Penalty]:
    """Top penalties as an array of entries or an object keyed by source.

    Object values may be a number (the penalty), an object with
    ``penalty``/``msg``, or a plain string (the message).
    """
    penalties: List[Penalty] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, Mapping):
                penalties.append(_penalty_from_mapping(item))
    elif isinstance(raw, Mapping):
        for key, value in raw.items():
            key = str(key)
            if isinstance(value, Mapping):
                penalties.append(_penalty_from_mapping(value, default_source=key))
            elif isinstance(value, str):
                penalties.append(Penalty(source=key, msg=value))
            else:
                points = coerce_int(value)
                if points is not None:
                    penalties.append(Penalty(source=key, penalty=points))
    return penalties


def extract_score_data(root: Mapping) -> ExternalScoreData:
    """``scoreV2`` when the scanner emits it, else the legacy ``summary`` block."""
    score_v2 = lookup(root, "scoreV2")
    if isinstance(score_v2, Mapping):
        breakdown = try_mapping(score_v2, "breakdown") or {}
        score = try_int(score_v2, "score")
        if score is None:
            score = 100
        base = try_int(score_v2, "baseScore")
        return ExternalScoreData(
            score=score,
            base_score=100 if base is None else base,
            total_penalty=try_int(score_v2, "totalPenalty") or 0,
            grade=try_string(score_v2, "grade") or "N/A",
            breakdown=ScoreBreakdown(
                critical=try_int(breakdown, "critical") or 0,
                collector_errors=try_int(breakdown, "collectorErrors") or 0,
                warnings=try_int(breakdown, "warnings") or 0,
                timeouts=try_int(breakdown, "timeouts") or 0,
                info_issues=try_int(breakdown, "infoIssues") or 0,
                excluded_limitations=try_int(breakdown, "excludedLimitations") or 0,
            ),
            top_penalties=parse_penalties(get_value(score_v2, "topPenalties")),
        )

    summary = lookup(root, "summary")
    if isinstance(summary, Mapping):
        score = try_int(summary, "score")
        score = 100 if score is None else score
        logger.debug("No scoreV2 block; using legacy summary score %d", score)
        return ExternalScoreData(
            score=score,
            base_score=100,
            total_penalty=100 - score,
            grade=try_string(summary, "grade") or "A",
            breakdown=ScoreBreakdown(
                critical=try_int(summary, "criticalCount") or 0,
                warnings=try_int(summary, "warningCount") or 0,
            ),
            legacy=True,
        )

    logger.debug("No external score in document")
    return ExternalScoreData()


def extract_metadata(root: Mapping) -> ScanMetadata:
    meta = lookup(root, "metadata")
    if not isinstance(meta, Mapping):
        return ScanMetadata()
    return ScanMetadata(
        version=try_string(meta, "version") or "unknown",
        run_id=try_string(meta, "runId") or "",
        timestamp=coerce_string(get_value(meta, "timestamp")),
        is_admin=bool(try_bool(meta, "isAdmin")),
        redact_level=try_string(meta, "redactLevel") or "standard",
        quick_scan=bool(try_bool(meta, "quickScan")),
        monitor_seconds=try_int(meta, "monitorSeconds") or 0,
        duration_seconds=try_float(meta, "durationSeconds") or 0.0,
        partial_failure=bool(try_bool(meta, "partialFailure")),
    )
