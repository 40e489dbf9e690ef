"""Read-only records produced by the external scanner."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ScanError:
    code: str = ""
    message: str = ""
    section: str = ""
    exception_type: str = ""

    @property
    def is_critical(self) -> bool:
        """WMI/SMART codes and 'invalid' messages count as critical."""
        code = self.code.upper()
        return "WMI" in code or "SMART" in code or "invalid" in self.message.lower()


@dataclass(frozen=True)
class Penalty:
    type: str = ""
    source: str = ""
    penalty: int = 0
    msg: str = ""


@dataclass(frozen=True)
class ScoreBreakdown:
    critical: int = 0
    collector_errors: int = 0
    warnings: int = 0
    timeouts: int = 0
    info_issues: int = 0
    excluded_limitations: int = 0


@dataclass(frozen=True)
class ExternalScoreData:
    score: int = 100
    base_score: int = 100
    total_penalty: int = 0
    grade: str = "N/A"
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    top_penalties: List[Penalty] = field(default_factory=list)
    legacy: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScanMetadata:
    version: str = "unknown"
    run_id: str = ""
    timestamp: Optional[str] = None
    is_admin: bool = False
    redact_level: str = "standard"
    quick_scan: bool = False
    monitor_seconds: int = 0
    duration_seconds: float = 0.0
    partial_failure: bool = False
