"""Data models for confidence and fused scoring."""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List


@dataclass
class ConfidenceModel:
    sections_coverage: float = 0.0      # 0..1
    sensors_coverage: float = 0.0       # 0..1
    sensors_available: int = 0
    sensors_total: int = 6
    confidence_score: int = 0           # 0..100
    confidence_level: str = "Low"       # "High" | "Medium" | "Low"
    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FinalScoreResult:
    local_score: int
    external_score: int
    confidence_score: int
    weights: Dict[str, float]       # {"local": .., "external": ..}
    formula: str
    raw_score: int
    applied_caps: List[str]
    final_score: int                # 0..100
    grade: str
    verdict: str
    audit_trail: List[str]

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
