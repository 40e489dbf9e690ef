"""Confidence-weighted fusion of the local and external scores.

The more of the machine the scan actually saw, the more the engine trusts
its own domain scores over the external scanner's number. Collection
problems then cap the result. Every step is written to an audit trail so
a reader can reproduce the final score by hand.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from healthfusion.config.settings import FusionSettings
from healthfusion.utils.audit import AuditSink, default_sink

from .grades import clamp_score, round_half_up, score_to_grade, score_to_verdict
from .models import FinalScoreResult

logger = logging.getLogger(__name__)


class ScoreFusionEngine:
    COMPONENT = "fusion"

    def __init__(self, settings: Optional[FusionSettings] = None, audit: Optional[AuditSink] = None):
        self.settings = settings or FusionSettings()
        self.audit = audit if audit is not None else default_sink(logger)

    def weights_for(self, confidence_score: int) -> Tuple[float, float, str]:
        """(local weight, external weight, tier name)."""
        s = self.settings
        if confidence_score >= s.high_confidence:
            return s.high_weights[0], s.high_weights[1], "High"
        if confidence_score >= s.medium_confidence:
            return s.medium_weights[0], s.medium_weights[1], "Medium"
        return s.low_weights[0], s.low_weights[1], "Low"

    def fuse(
        self,
        local_score: int,
        external_score: int,
        confidence_score: int,
        collector_errors_logical: int = 0,
        missing_data_count: int = 0,
        collection_status: str = "OK",
    ) -> FinalScoreResult:
        s = self.settings
        trail: List[str] = []

        def note(line: str) -> None:
            trail.append(line)
            self.audit.record(self.COMPONENT, line)

        w_local, w_external, tier = self.weights_for(confidence_score)
        formula = f"{tier} confidence: {w_local:.0%} local + {w_external:.0%} external"

        note(f"Local score: {local_score}")
        note(f"External score: {external_score}")
        note(f"Confidence: {confidence_score}")
        note(f"Formula: {formula}")

        bounded_local, bounded_external = clamp_score(local_score), clamp_score(external_score)
        if bounded_local != local_score:
            note(f"Local score clamped: {local_score} -> {bounded_local}")
        if bounded_external != external_score:
            note(f"External score clamped: {external_score} -> {bounded_external}")
        local_score, external_score = bounded_local, bounded_external

        raw = round_half_up(local_score * w_local + external_score * w_external)
        note(f"Raw: {local_score} x {w_local} + {external_score} x {w_external} = {raw}")

        score = raw
        caps: List[str] = []

        def cap(limit: int, reason: str) -> None:
            nonlocal score
            if score > limit:
                caps.append(f"{reason}: capped at {limit}")
                note(f"Cap applied: {reason} ({score} -> {limit})")
                score = limit

        if collector_errors_logical > 0:
            cap(s.logical_error_cap, f"{collector_errors_logical} collector error(s)")
        if missing_data_count > s.missing_data_threshold:
            cap(s.missing_data_cap, f"{missing_data_count} missing data items")
        if collection_status == "FAILED":
            cap(s.failed_collection_cap, "collection failed")

        score = clamp_score(score)
        grade = score_to_grade(score)
        note(f"Final: {score} ({grade})")

        return FinalScoreResult(
            local_score=local_score,
            external_score=external_score,
            confidence_score=confidence_score,
            weights={"local": w_local, "external": w_external},
            formula=formula,
            raw_score=raw,
            applied_caps=caps,
            final_score=score,
            grade=grade,
            verdict=score_to_verdict(score),
            audit_trail=trail,
        )
