"""Small fixed-shape summaries from the other upstream collectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


def _num(d: Mapping, key: str, default: Optional[float] = 0.0) -> Optional[float]:
    v = d.get(key)
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return default
    try:
        return float(v)
    except OverflowError:
        return default


@dataclass(frozen=True)
class ProcessEntry:
    name: str = ""
    cpu_percent: float = 0.0
    working_set_mb: float = 0.0

    @classmethod
    def from_dict(cls, d: Mapping) -> "ProcessEntry":
        return cls(
            name=str(d.get("name", "")),
            cpu_percent=_num(d, "cpuPercent"),
            working_set_mb=_num(d, "workingSetMB"),
        )


@dataclass(frozen=True)
class ProcessTelemetry:
    available: bool = False
    total_process_count: int = 0
    access_denied_count: int = 0
    top_by_cpu: List[ProcessEntry] = field(default_factory=list)
    top_by_memory: List[ProcessEntry] = field(default_factory=list)
    source: str = "ProcessTelemetryCollector"

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> Optional["ProcessTelemetry"]:
        if d is None:
            return None
        return cls(
            available=bool(d.get("available", False)),
            total_process_count=int(_num(d, "totalProcessCount")),
            access_denied_count=int(_num(d, "accessDeniedCount")),
            top_by_cpu=[ProcessEntry.from_dict(x) for x in d.get("topByCpu") or [] if isinstance(x, Mapping)],
            top_by_memory=[ProcessEntry.from_dict(x) for x in d.get("topByMemory") or [] if isinstance(x, Mapping)],
            source=str(d.get("source") or "ProcessTelemetryCollector"),
        )


@dataclass(frozen=True)
class NetworkDiagnostics:
    available: bool = False
    latency_p50_ms: float = 0.0
    latency_p95_ms: float = 0.0
    jitter_p95_ms: float = 0.0
    loss_percent: float = 0.0
    dns_p95_ms: float = 0.0
    gateway: Optional[str] = None
    download_mbps: Optional[float] = None
    source: str = "NetworkDiagnosticsCollector"

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> Optional["NetworkDiagnostics"]:
        if d is None:
            return None
        throughput = d.get("throughput") or {}
        download = _num(throughput, "downloadMbpsMedian", None) if isinstance(throughput, Mapping) else None
        return cls(
            available=bool(d.get("available", False)),
            latency_p50_ms=_num(d, "overallLatencyMsP50"),
            latency_p95_ms=_num(d, "overallLatencyMsP95"),
            jitter_p95_ms=_num(d, "overallJitterMsP95"),
            loss_percent=_num(d, "overallLossPercent"),
            dns_p95_ms=_num(d, "dnsP95Ms"),
            gateway=d.get("gateway"),
            download_mbps=download,
            source=str(d.get("source") or "NetworkDiagnosticsCollector"),
        )


@dataclass(frozen=True)
class DriverEntry:
    name: str = ""
    device_class: str = ""
    version: str = ""
    update_status: str = "Unknown"
    signed: bool = True

    @classmethod
    def from_dict(cls, d: Mapping) -> "DriverEntry":
        return cls(
            name=str(d.get("name", "")),
            device_class=str(d.get("deviceClass") or d.get("class") or ""),
            version=str(d.get("version", "")),
            update_status=str(d.get("updateStatus") or "Unknown"),
            signed=bool(d.get("signed", True)),
        )


@dataclass(frozen=True)
class DriverInventory:
    available: bool = False
    drivers: List[DriverEntry] = field(default_factory=list)
    problem_count: int = 0

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> Optional["DriverInventory"]:
        if d is None:
            return None
        return cls(
            available=bool(d.get("available", False)),
            drivers=[DriverEntry.from_dict(x) for x in d.get("drivers") or [] if isinstance(x, Mapping)],
            problem_count=int(_num(d, "problemCount")),
        )

    @property
    def total_count(self) -> int:
        return len(self.drivers)

    @property
    def unsigned_count(self) -> int:
        return sum(1 for x in self.drivers if not x.signed)

    @property
    def outdated_count(self) -> int:
        return sum(1 for x in self.drivers if x.update_status == "Outdated")

    def by_class(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for drv in self.drivers:
            if drv.device_class:
                counts[drv.device_class] = counts.get(drv.device_class, 0) + 1
        return counts


@dataclass(frozen=True)
class UpdateStatus:
    available: bool = False
    pending_count: int = 0
    reboot_required: Optional[bool] = None

    @classmethod
    def from_dict(cls, d: Optional[Mapping]) -> Optional["UpdateStatus"]:
        if d is None:
            return None
        reboot = d.get("rebootRequired")
        return cls(
            available=bool(d.get("available", False)),
            pending_count=int(_num(d, "pendingCount")),
            reboot_required=reboot if isinstance(reboot, bool) else None,
        )


@dataclass(frozen=True)
class DiagnosticSignal:
    """Output of one dynamic signal collector (boot, WHEA, DPC, ...)."""
    available: bool = False
    source: str = "signal"
    reason: Optional[str] = None
    value: Any = None

    @classmethod
    def from_dict(cls, d: Mapping) -> "DiagnosticSignal":
        return cls(
            available=bool(d.get("available", False)),
            source=str(d.get("source") or "signal"),
            reason=str(d["reason"]) if d.get("reason") is not None else None,
            value=d.get("value"),
        )
