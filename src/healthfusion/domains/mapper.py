"""Fold scan sections, penalties and collector data into the eight health domains.

Every report carries exactly one ``HealthSection`` per ``HealthDomain``, in
enum order, whether or not the scan produced anything for it.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from healthfusion.models.collectors import DriverInventory, UpdateStatus
from healthfusion.models.external import ExternalScoreData, Penalty
from healthfusion.models.report import (
    Divergence,
    HealthDomain,
    HealthFinding,
    HealthSection,
    Recommendation,
    Severity,
)
from healthfusion.models.sensors import HardwareSensors
from healthfusion.models.snapshot import Snapshot
from healthfusion.resolution import iter_statuses
from healthfusion.scoring.grades import clamp_score
from healthfusion.scoring.models import FinalScoreResult
from healthfusion.utils.audit import AuditSink, default_sink

logger = logging.getLogger(__name__)

D = HealthDomain

SECTION_TO_DOMAIN: Dict[str, HealthDomain] = {
    "OS": D.OS,
    "MachineIdentity": D.OS,
    "WindowsUpdate": D.OS,
    "SystemIntegrity": D.OS,
    "UserProfiles": D.OS,
    "EnvironmentVariables": D.OS,
    "Virtualization": D.OS,
    "Registry": D.OS,
    "CPU": D.CPU,
    "Temperatures": D.CPU,
    "GPU": D.GPU,
    "Memory": D.RAM,
    "Storage": D.STORAGE,
    "SmartDetails": D.STORAGE,
    "TempFiles": D.STORAGE,
    "Network": D.NETWORK,
    "NetworkLatency": D.NETWORK,
    "EventLogs": D.SYSTEM_STABILITY,
    "ReliabilityHistory": D.SYSTEM_STABILITY,
    "MinidumpAnalysis": D.SYSTEM_STABILITY,
    "RestorePoints": D.SYSTEM_STABILITY,
    "Services": D.SYSTEM_STABILITY,
    "DevicesDrivers": D.DRIVERS,
    "Audio": D.DRIVERS,
    "Printers": D.DRIVERS,
}

_LOWER_SECTION_TO_DOMAIN = {k.lower(): v for k, v in SECTION_TO_DOMAIN.items()}

FAILED_SECTION_PENALTY = 20
PARTIAL_SECTION_PENALTY = 5

_STATUS_RANK = {"OK": 0, "PARTIAL": 1, "FAILED": 2}

STATUS_MESSAGES = {
    Severity.EXCELLENT: "Excellent condition",
    Severity.HEALTHY: "Good condition",
    Severity.WARNING: "Attention recommended",
    Severity.DEGRADED: "Action required",
    Severity.CRITICAL: "Urgent intervention",
}
NO_DATA_MESSAGE = "Data not available"

SECTION_RECOMMENDATIONS: Dict[HealthDomain, Tuple[str, ...]] = {
    D.OS: ("Check for pending Windows updates", "Run a full antivirus scan"),
    D.CPU: ("Check the ventilation and clean the fans", "Close programs you are not using"),
    D.GPU: ("Update the graphics drivers",),
    D.RAM: ("Close memory-heavy programs", "Consider adding more RAM"),
    D.STORAGE: ("Free up disk space", "Check the SMART status of your disks"),
    D.NETWORK: ("Check your internet connection", "Restart your router"),
    D.SYSTEM_STABILITY: ("Review the event logs for recurring errors", "Create a restore point"),
    D.DRIVERS: ("Update outdated drivers", "Uninstall drivers you no longer use"),
}

# (metric group, key, evidence label)
SNAPSHOT_EVIDENCE: Dict[HealthDomain, Tuple[Tuple[str, str, str], ...]] = {
    D.OS: (
        ("os", "caption", "Version"),
        ("os", "buildNumber", "Build"),
        ("os", "uptime", "Uptime"),
        ("security", "antivirusStatus", "Antivirus"),
        ("security", "firewallStatus", "Firewall"),
    ),
    D.CPU: (
        ("processes", "topCpuPercent", "Top process CPU"),
        ("processes", "totalProcessCount", "Processes"),
    ),
    D.GPU: (),
    D.RAM: (
        ("memory", "totalGB", "Total"),
        ("memory", "usedPercent", "Used"),
        ("memory", "pageFileUsagePercent", "Page file usage"),
    ),
    D.STORAGE: (
        ("storage", "diskCount", "Disks"),
        ("storage", "smartHealthy", "SMART healthy"),
        ("storage", "tempFilesSizeMB", "Temp files"),
    ),
    D.NETWORK: (
        ("network", "adapterCount", "Adapters"),
        ("network", "avgLatency", "Average latency"),
        ("network", "defaultGateway", "Gateway"),
    ),
    D.SYSTEM_STABILITY: (
        ("stability", "criticalEvents24h", "Critical events (24h)"),
        ("stability", "errorEvents24h", "Error events (24h)"),
        ("stability", "minidumpCount", "Minidumps"),
    ),
    D.DRIVERS: (
        ("devices", "totalDevices", "Devices"),
        ("devices", "problemDevices", "Problem devices"),
    ),
}


def domain_for_section(name: Optional[str]) -> Optional[HealthDomain]:
    if not name:
        return None
    return SECTION_TO_DOMAIN.get(name) or _LOWER_SECTION_TO_DOMAIN.get(name.lower())


def severity_for_score(score: int) -> Severity:
    if score >= 100:
        return Severity.EXCELLENT
    if score >= 70:
        return Severity.HEALTHY
    if score >= 60:
        return Severity.WARNING
    if score >= 40:
        return Severity.DEGRADED
    return Severity.CRITICAL


def severity_for_penalty_type(penalty_type: str) -> Severity:
    t = (penalty_type or "").upper()
    if t == "CRITICAL":
        return Severity.CRITICAL
    if t == "COLLECTOR_ERROR":
        return Severity.DEGRADED
    if t in ("WARN", "WARNING"):
        return Severity.WARNING
    return Severity.HEALTHY


def _normalize_status(status: str) -> str:
    if status in ("FAILED", "ERROR"):
        return "FAILED"
    if status == "PARTIAL":
        return "PARTIAL"
    return "OK"


def _metric_text(metric) -> Optional[str]:
    if metric is None or not metric.available or metric.value is None:
        return None
    text = str(metric.value)
    unit = metric.unit
    if unit and unit not in ("count", "bool", "date"):
        sep = "" if unit in ("%", "°C") else " "
        text = f"{text}{sep}{unit}"
    return text


class HealthDomainMapper:
    COMPONENT = "domains"

    def __init__(self, audit: Optional[AuditSink] = None):
        self.audit = audit if audit is not None else default_sink(logger)

    # ---- domain sections ----

    def map(
        self,
        sections: Optional[Mapping],
        penalties: Sequence[Penalty] = (),
        snapshot: Optional[Snapshot] = None,
    ) -> List[HealthSection]:
        """One HealthSection per domain from section statuses and penalties."""
        statuses: Dict[HealthDomain, List[str]] = {d: [] for d in HealthDomain}
        for name, status in iter_statuses(sections):
            domain = domain_for_section(name)
            if domain is not None:
                statuses[domain].append(_normalize_status(status))

        by_domain: Dict[HealthDomain, List[Penalty]] = {d: [] for d in HealthDomain}
        for p in penalties:
            domain = domain_for_section(p.source)
            if domain is not None:
                by_domain[domain].append(p)

        result = []
        for domain in HealthDomain:
            section = self._build_section(domain, statuses[domain], by_domain[domain])
            if snapshot is not None:
                self._add_snapshot_evidence(section, snapshot)
            result.append(section)
        return result

    def _build_section(self, domain: HealthDomain, statuses: List[str], penalties: List[Penalty]) -> HealthSection:
        section = HealthSection(domain=domain)
        if not statuses:
            section.status_message = NO_DATA_MESSAGE
            return section

        score = 100
        score -= FAILED_SECTION_PENALTY * statuses.count("FAILED")
        score -= PARTIAL_SECTION_PENALTY * statuses.count("PARTIAL")
        score -= sum(p.penalty for p in penalties)
        score = clamp_score(score)

        section.has_data = True
        section.score = score
        section.severity = severity_for_score(score)
        section.collection_status = max(statuses, key=_STATUS_RANK.__getitem__)
        section.status_message = STATUS_MESSAGES.get(section.severity, NO_DATA_MESSAGE)
        section.findings = [
            HealthFinding(
                severity=severity_for_penalty_type(p.type),
                title=p.type,
                description=p.msg,
                source=p.source,
                penalty_applied=p.penalty,
            )
            for p in penalties
        ]
        if section.severity >= Severity.WARNING:
            section.recommendations = list(SECTION_RECOMMENDATIONS.get(domain, ()))
        return section

    def _add_snapshot_evidence(self, section: HealthSection, snapshot: Snapshot) -> None:
        for group, key, label in SNAPSHOT_EVIDENCE.get(section.domain, ()):
            text = _metric_text(snapshot.metric(group, key))
            if text is not None:
                section.evidence.setdefault(label, text)

    # ---- evidence injection; never changes scores ----

    def inject_sensors(self, sections: Iterable[HealthSection], sensors: Optional[HardwareSensors]) -> None:
        if sensors is None:
            return
        index = {s.domain: s for s in sections}

        cpu_section = index.get(D.CPU)
        if cpu_section is not None and sensors.cpu is not None and sensors.cpu.temp_c.available:
            cpu_section.evidence["Temperature"] = f"{float(sensors.cpu.temp_c.value):.1f}°C"
            cpu_section.has_data = True

        gpu_section = index.get(D.GPU)
        gpu = sensors.gpu
        if gpu_section is not None and gpu is not None:
            ev = gpu_section.evidence
            if gpu.name.available and gpu.name.value:
                ev["GPU"] = str(gpu.name.value)
            if gpu.temp_c.available:
                ev["Temperature"] = f"{float(gpu.temp_c.value):.1f}°C"
            if gpu.load_percent.available:
                ev["Load"] = f"{float(gpu.load_percent.value):.0f}%"
            total = float(gpu.vram_total_mb.value) if gpu.vram_total_mb.available else None
            if total is not None:
                ev["VRAM Total"] = f"{total:.0f} MB"
            if gpu.vram_used_mb.available:
                used = float(gpu.vram_used_mb.value)
                if total:
                    ev["VRAM Used"] = f"{used:.0f} MB ({used / total * 100:.0f}%)"
                else:
                    ev["VRAM Used"] = f"{used:.0f} MB"
            if ev:
                gpu_section.has_data = True

        storage_section = index.get(D.STORAGE)
        temps = [
            (d.label or f"Disk {i + 1}", float(d.temp_c.value))
            for i, d in enumerate(sensors.disks)
            if d.temp_c.available
        ]
        if storage_section is not None and temps:
            storage_section.evidence["Max disk temperature"] = f"{max(t for _, t in temps):.0f}°C"
            for i, (name, temp) in enumerate(temps[:5]):
                storage_section.evidence[f"Disk {i + 1}"] = f"{name}: {temp:.0f}°C"
            storage_section.has_data = True

    def inject_drivers(self, sections: Iterable[HealthSection], inventory: Optional[DriverInventory]) -> None:
        if inventory is None or not inventory.available:
            return
        section = next((s for s in sections if s.domain is D.DRIVERS), None)
        if section is None:
            return

        ev = section.evidence
        ev["Drivers detected"] = str(inventory.total_count)
        if inventory.unsigned_count > 0:
            ev["Unsigned"] = str(inventory.unsigned_count)
        if inventory.problem_count > 0:
            ev["Problem devices"] = str(inventory.problem_count)
        if inventory.outdated_count > 0:
            ev["Outdated"] = str(inventory.outdated_count)
        classes = sorted(inventory.by_class().items(), key=lambda kv: (-kv[1], kv[0]))[:5]
        if classes:
            ev["Classes"] = ", ".join(f"{name} ({count})" for name, count in classes)

        section.has_data = True
        if section.collection_status == "MISSING":
            section.collection_status = "DRIVER_INVENTORY_FALLBACK"
        if section.score == 0 and section.severity is Severity.UNKNOWN:
            if inventory.outdated_count > 0:
                section.score, section.severity = 70, Severity.WARNING
                section.status_message = "Updates recommended"
            else:
                section.score, section.severity = 85, Severity.HEALTHY
                section.status_message = "Drivers detected"
            self.audit.record(
                self.COMPONENT,
                f"Drivers domain filled from inventory: {section.score}",
                drivers=inventory.total_count,
            )

    def inject_updates(self, sections: Iterable[HealthSection], updates: Optional[UpdateStatus]) -> None:
        if updates is None or not updates.available:
            return
        section = next((s for s in sections if s.domain is D.OS), None)
        if section is None:
            return
        ev = section.evidence
        ev["Pending updates"] = str(updates.pending_count)
        ev["Update status"] = "Updates pending" if updates.pending_count > 0 else "Up to date"
        if updates.reboot_required is not None:
            ev["Reboot required"] = "Yes" if updates.reboot_required else "No"
        section.has_data = True

    # ---- report-level records ----

    def divergence(self, external: ExternalScoreData, final: FinalScoreResult) -> Divergence:
        record = Divergence(
            external_score=external.score,
            external_grade=external.grade,
            engine_score=final.final_score,
            engine_grade=final.grade,
        )
        if record.delta != 0:
            logger.info(
                "External score %d (%s) differs from fused score %d (%s) by %d",
                record.external_score, record.external_grade,
                record.engine_score, record.engine_grade, record.delta,
            )
            self.audit.record(self.COMPONENT, f"Divergence {record.delta}", coherent=record.is_coherent)
        return record

    def recommendations(self, penalties: Sequence[Penalty], limit: int = 5) -> List[Recommendation]:
        """From the first ``limit`` penalties, most severe first."""
        recs = [
            Recommendation(
                priority=severity_for_penalty_type(p.type),
                domain=domain_for_section(p.source),
                title=f"Issue: {p.source}",
                description=p.msg,
            )
            for p in list(penalties)[:limit]
        ]
        recs.sort(key=lambda r: r.priority, reverse=True)
        return recs
