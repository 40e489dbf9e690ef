"""Canonical per-scan snapshot produced by the assembler."""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional

from .metrics import NormalizedMetric

MetricGroup = Dict[str, NormalizedMetric]


@dataclass
class MachineInfo:
    hostname: Optional[str] = None
    os_version: Optional[str] = None
    os_build: Optional[str] = None
    architecture: Optional[str] = None
    cpu_name: Optional[str] = None
    total_ram_gb: Optional[float] = None
    install_date: Optional[str] = None
    last_boot_time: Optional[str] = None
    uptime: Optional[str] = None
    is_admin: bool = False


@dataclass(frozen=True)
class CollectionQuality:
    total: int = 0
    available: int = 0
    unavailable: int = 0
    coverage_percent: float = 0.0
    sections_mapped: int = 0
    sections_skipped: int = 0
    signals_collected: int = 0
    signals_unavailable: int = 0
    violations_repaired: int = 0


@dataclass
class SensorStatus:
    sensors_available: bool = False
    blocked_by_defender: bool = False
    blocked_by_driver: bool = False
    block_reason: Optional[str] = None
    user_message: Optional[str] = None
    exceptions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Finding:
    title: str
    severity: str = "info"
    source: str = ""
    description: str = ""


@dataclass
class UpdatesSummary:
    pending_count: Optional[int] = None
    reboot_required: Optional[bool] = None
    last_update: Optional[str] = None


@dataclass
class InventorySummary:
    """Count plus a few representative names (startup, printers, audio, devices)."""
    count: Optional[int] = None
    names: List[str] = field(default_factory=list)


@dataclass
class ApplicationsSummary:
    installed_count: Optional[int] = None
    last_installed: Optional[str] = None


@dataclass
class ExternalSummary:
    updates: Optional[UpdatesSummary] = None
    startup: Optional[InventorySummary] = None
    applications: Optional[ApplicationsSummary] = None
    problem_devices: Optional[InventorySummary] = None
    printers: Optional[InventorySummary] = None
    audio: Optional[InventorySummary] = None


@dataclass
class ProcessSummary:
    available: bool = False
    total_process_count: int = 0
    top_cpu_process: Optional[str] = None
    top_cpu_percent: float = 0.0
    top_memory_process: Optional[str] = None
    top_memory_mb: float = 0.0
    source: Optional[str] = None


@dataclass
class NetworkSummary:
    available: bool = False
    latency_p50_ms: float = 0.0
    latency_p95_ms: float = 0.0
    jitter_p95_ms: float = 0.0
    packet_loss_percent: float = 0.0
    dns_p95_ms: float = 0.0
    gateway: Optional[str] = None
    download_mbps: Optional[float] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class Snapshot:
    generated_at: str
    machine: MachineInfo
    metrics: Mapping[str, Mapping[str, NormalizedMetric]]
    findings: List[Finding]
    collection_quality: CollectionQuality
    sensor_status: SensorStatus
    external_summary: Optional[ExternalSummary] = None
    process_summary: Optional[ProcessSummary] = None
    network_summary: Optional[NetworkSummary] = None
    build_log: List[str] = field(default_factory=list)

    def metric(self, group: str, key: str) -> Optional[NormalizedMetric]:
        return self.metrics.get(group, {}).get(key)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "machine": asdict(self.machine),
            "metrics": {
                g: {k: m.as_dict() for k, m in group.items()}
                for g, group in self.metrics.items()
            },
            "findings": [asdict(f) for f in self.findings],
            "collectionQuality": asdict(self.collection_quality),
            "sensorStatus": asdict(self.sensor_status),
            "externalSummary": asdict(self.external_summary) if self.external_summary else None,
            "processSummary": asdict(self.process_summary) if self.process_summary else None,
            "networkSummary": asdict(self.network_summary) if self.network_summary else None,
        }
