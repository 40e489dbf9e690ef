"""Confidence model, score fusion and grading."""

from .models import ConfidenceModel, FinalScoreResult
from .grades import (
    GRADE_BANDS,
    clamp_score,
    round_half_up,
    score_to_grade,
    score_to_verdict,
)
from .confidence import ConfidenceCalculator, confidence_level
from .fusion import ScoreFusionEngine
from .local import DOMAIN_WEIGHTS, compute_local_score

__all__ = [
    "ConfidenceModel",
    "FinalScoreResult",
    "GRADE_BANDS",
    "clamp_score",
    "round_half_up",
    "score_to_grade",
    "score_to_verdict",
    "ConfidenceCalculator",
    "confidence_level",
    "ScoreFusionEngine",
    "DOMAIN_WEIGHTS",
    "compute_local_score",
]
