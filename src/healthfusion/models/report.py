"""Health report structures handed to the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from healthfusion.models.external import ExternalScoreData, ScanError, ScanMetadata
from healthfusion.scoring.models import ConfidenceModel, FinalScoreResult


class HealthDomain(Enum):
    OS = "OS"
    CPU = "CPU"
    GPU = "GPU"
    RAM = "RAM"
    STORAGE = "Storage"
    NETWORK = "Network"
    SYSTEM_STABILITY = "SystemStability"
    DRIVERS = "Drivers"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    HealthDomain.OS: "Operating system",
    HealthDomain.CPU: "Processor",
    HealthDomain.GPU: "Graphics card",
    HealthDomain.RAM: "Memory",
    HealthDomain.STORAGE: "Storage",
    HealthDomain.NETWORK: "Network",
    HealthDomain.SYSTEM_STABILITY: "System stability",
    HealthDomain.DRIVERS: "Drivers",
}


class Severity(IntEnum):
    """Domain-level display banding; higher is worse, Unknown sorts last."""
    UNKNOWN = 0
    EXCELLENT = 1
    HEALTHY = 2
    WARNING = 3
    DEGRADED = 4
    CRITICAL = 5

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class HealthFinding:
    severity: Severity
    title: str
    description: str
    source: str
    penalty_applied: int = 0


@dataclass
class HealthSection:
    domain: HealthDomain
    score: int = 0
    severity: Severity = Severity.UNKNOWN
    evidence: Dict[str, str] = field(default_factory=dict)
    findings: List[HealthFinding] = field(default_factory=list)
    collection_status: str = "MISSING"
    has_data: bool = False
    status_message: str = ""
    recommendations: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain.value,
            "score": self.score,
            "severity": self.severity.label,
            "evidence": dict(self.evidence),
            "findings": [
                {**asdict(f), "severity": f.severity.label} for f in self.findings
            ],
            "collectionStatus": self.collection_status,
            "hasData": self.has_data,
            "statusMessage": self.status_message,
            "recommendations": list(self.recommendations),
        }


@dataclass
class Divergence:
    external_score: int = 0
    external_grade: str = "N/A"
    engine_score: int = 0
    engine_grade: str = "N/A"
    source_of_truth: str = "fused score"

    @property
    def delta(self) -> int:
        return abs(self.engine_score - self.external_score)

    @property
    def is_coherent(self) -> bool:
        return self.delta <= 10

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["delta"] = self.delta
        d["is_coherent"] = self.is_coherent
        return d


@dataclass(frozen=True)
class Recommendation:
    priority: Severity
    domain: Optional[HealthDomain]
    title: str
    description: str
    action: str = "See details"


@dataclass
class HealthReport:
    global_score: int = 0
    grade: str = "N/A"
    verdict: str = ""
    severity: Severity = Severity.UNKNOWN
    sections: List[HealthSection] = field(default_factory=list)
    divergence: Divergence = field(default_factory=Divergence)
    confidence_model: ConfidenceModel = field(default_factory=ConfidenceModel)
    final_score: Optional[FinalScoreResult] = None
    recommendations: List[Recommendation] = field(default_factory=list)
    errors: List[ScanError] = field(default_factory=list)
    missing_data: List[str] = field(default_factory=list)
    collector_errors_logical: int = 0
    collection_status: str = "OK"
    metadata: ScanMetadata = field(default_factory=ScanMetadata)
    external_score: ExternalScoreData = field(default_factory=ExternalScoreData)

    def section(self, domain: HealthDomain) -> Optional[HealthSection]:
        for s in self.sections:
            if s.domain is domain:
                return s
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "globalScore": self.global_score,
            "grade": self.grade,
            "verdict": self.verdict,
            "severity": self.severity.label,
            "collectionStatus": self.collection_status,
            "collectorErrorsLogical": self.collector_errors_logical,
            "sections": [s.as_dict() for s in self.sections],
            "divergence": self.divergence.as_dict(),
            "confidenceModel": self.confidence_model.as_dict(),
            "finalScore": self.final_score.as_dict() if self.final_score else None,
            "recommendations": [
                {
                    "priority": r.priority.label,
                    "domain": r.domain.value if r.domain else None,
                    "title": r.title,
                    "description": r.description,
                    "action": r.action,
                }
                for r in self.recommendations
            ],
            "errors": [asdict(e) for e in self.errors],
            "missingData": list(self.missing_data),
            "metadata": asdict(self.metadata),
            "externalScore": self.external_score.as_dict(),
        }
