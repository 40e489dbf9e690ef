"""Snapshot assembler: one instance owns the snapshot of one scan."""

from __future__ import annotations

import copy
import logging
from dataclasses import replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from healthfusion.models.collectors import DiagnosticSignal, NetworkDiagnostics, ProcessTelemetry
from healthfusion.models.metrics import (
    NormalizedMetric,
    Reason,
    create_available,
    create_unavailable,
    from_count,
    to_metric_value,
)
from healthfusion.models.sensors import HardwareSensors, SensorReading
from healthfusion.models.snapshot import (
    CollectionQuality,
    ExternalSummary,
    Finding,
    MachineInfo,
    MetricGroup,
    NetworkSummary,
    ProcessSummary,
    SensorStatus,
    Snapshot,
)
from healthfusion.normalization import MetricNormalizer
from healthfusion.resolution import locate_sections, resolve_section
from healthfusion.utils.audit import AuditSink, default_sink

from .merge import aggregate_max, merge_into
from .section_mappers import SECTION_MAPPERS, build_external_summary, enrich_machine_info

logger = logging.getLogger(__name__)

# signal collectors expected when none reported at all
EXPECTED_SIGNALS = 10

DEFENDER_MARKERS = ("access denied", "defender", "antivirus", "blocked")
DRIVER_MARKERS = ("winring0", "driver", "kernel", "ring0")


class SnapshotAssembler:
    """Collects metrics from every source, then freezes them with ``build()``.

    ``add_*`` methods accept ``None`` or partial input and never raise; a
    missing input becomes an unavailable metric. Values from a second source
    only replace values that are still unavailable.
    """

    COMPONENT = "assembler"

    def __init__(
        self,
        normalizer: Optional[MetricNormalizer] = None,
        audit: Optional[AuditSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.normalizer = normalizer or MetricNormalizer()
        self.audit = audit if audit is not None else default_sink(logger)
        clock = clock or (lambda: datetime.now(timezone.utc))
        self._generated_at = clock().isoformat()

        self._metrics: Dict[str, MetricGroup] = {}
        self._findings: List[Finding] = []
        self._machine = MachineInfo()
        self._sensor_status = SensorStatus()
        self._external_summary: Optional[ExternalSummary] = None
        self._process_summary: Optional[ProcessSummary] = None
        self._network_summary: Optional[NetworkSummary] = None
        self._log: List[str] = []

        self._sections_mapped = 0
        self._sections_skipped = 0
        self._signals_collected = 0
        self._signals_unavailable = 0
        self._violations_repaired = 0

    # ---- internals ----

    def _record(self, message: str, **fields: Any) -> None:
        self._log.append(message)
        self.audit.record(self.COMPONENT, message, **fields)

    def _merge(self, group_name: str, metrics: MetricGroup) -> None:
        group = self._metrics.setdefault(group_name, {})
        for key, metric in metrics.items():
            merge_into(group, key, metric)

    def add_metrics(self, group_name: str, metrics: Mapping[str, NormalizedMetric]) -> "SnapshotAssembler":
        """Merge already-normalized metrics from any other source."""
        self._merge(group_name, dict(metrics))
        return self

    # ---- hardware sensors ----

    def add_cpu_metrics(self, sensors: Optional[HardwareSensors]) -> "SnapshotAssembler":
        if sensors is not None and sensors.cpu is not None:
            source = sensors.cpu.temp_source or "LHM"
            temp = self.normalizer.normalize_cpu_temp(sensors.cpu.temp_c, source)
        else:
            temp = create_unavailable("°C", "HardwareSensorsCollector", Reason.SENSOR_NOT_AVAILABLE)
        self._merge("cpu", {"cpuTempC": temp})
        return self

    def add_gpu_metrics(self, sensors: Optional[HardwareSensors]) -> "SnapshotAssembler":
        gpu = sensors.gpu if sensors is not None else None
        if gpu is None:
            self._merge("gpu", {
                "gpuTempC": create_unavailable("°C", "LHM", Reason.GPU_NOT_DETECTED),
                "gpuLoadPercent": create_unavailable("%", "LHM", Reason.GPU_NOT_DETECTED),
            })
            return self

        if gpu.name.available and gpu.name.value:
            name = create_available(str(gpu.name.value), "", "LHM")
        else:
            name = create_unavailable("", "LHM", gpu.name.reason or Reason.NOT_DETECTED)
        n = self.normalizer
        total = n.normalize_vram_total(gpu.vram_total_mb)
        self._merge("gpu", {
            "name": name,
            "gpuTempC": n.normalize_gpu_temp(gpu.temp_c),
            "gpuLoadPercent": n.normalize_percent(gpu.load_percent, "LHM", "gpu load"),
            "vramTotalMB": total,
            "vramUsedMB": n.normalize_vram_used(gpu.vram_used_mb, total.number),
        })
        return self

    def add_storage_metrics(self, sensors: Optional[HardwareSensors]) -> "SnapshotAssembler":
        disks = sensors.disks if sensors is not None else []
        if not disks:
            self._merge("storage", {
                "diskCount": from_count(0, "LHM", qualifier="no_disks_detected"),
            })
            return self

        group: MetricGroup = {}
        temps: List[NormalizedMetric] = []
        for i, disk in enumerate(disks):
            reading = disk.temp_c
            if not reading.available and not reading.reason:
                reading = SensorReading.missing(Reason.DISK_TEMP_NOT_AVAILABLE, reading.source)
            metric = self.normalizer.normalize_disk_temp(reading, disk.label or f"disk_{i}")
            group[f"disk_{i}_tempC"] = metric
            temps.append(metric)
        group["diskCount"] = from_count(len(disks), "LHM")
        group["maxDiskTempC"] = aggregate_max(temps, "°C", "Derived")
        self._merge("storage", group)
        return self

    def record_sensor_status(
        self,
        sensors: Optional[HardwareSensors],
        exceptions: Optional[Iterable[str]] = None,
    ) -> "SnapshotAssembler":
        """Work out whether sensor access was blocked and why."""
        status = self._sensor_status
        if exceptions is None and sensors is not None:
            exceptions = sensors.exceptions
        exceptions = [str(e) for e in exceptions or []]

        if exceptions:
            status.exceptions = list(exceptions)
            for text in exceptions:
                lowered = text.lower()
                if any(m in lowered for m in DEFENDER_MARKERS):
                    status.blocked_by_defender = True
                    status.block_reason = "Antivirus/Defender blocking sensor access"
                    status.user_message = (
                        "Sensors were blocked by security software. Run as administrator "
                        "or add an exclusion for the application folder."
                    )
                elif any(m in lowered for m in DRIVER_MARKERS):
                    status.blocked_by_driver = True
                    status.block_reason = "Kernel sensor driver not loaded"
                    status.user_message = (
                        "The sensor driver is not loaded. Run as administrator to enable "
                        "hardware sensors."
                    )

        if sensors is not None:
            has_sensors = bool(
                (sensors.cpu is not None and sensors.cpu.temp_c.available)
                or (sensors.gpu is not None and sensors.gpu.temp_c.available)
                or any(d.temp_c.available for d in sensors.disks)
            )
            status.sensors_available = has_sensors
            if not has_sensors and not status.blocked_by_defender and not status.blocked_by_driver:
                reasons = []
                if sensors.cpu is not None and sensors.cpu.temp_c.reason:
                    reasons.append(f"CPU: {sensors.cpu.temp_c.reason}")
                if sensors.gpu is not None and sensors.gpu.temp_c.reason:
                    reasons.append(f"GPU: {sensors.gpu.temp_c.reason}")
                if reasons:
                    status.block_reason = "; ".join(reasons)

        self._record(
            "sensor status recorded",
            sensors_available=status.sensors_available,
            blocked_by_defender=status.blocked_by_defender,
            blocked_by_driver=status.blocked_by_driver,
        )
        return self

    # ---- external scan document ----

    def add_scan_document(self, root: Optional[Mapping]) -> "SnapshotAssembler":
        if not isinstance(root, Mapping):
            self._record("no scan document")
            return self

        sections = locate_sections(root)
        if not sections:
            self._record("scan document has no sections")
            return self

        mapped = skipped = 0
        for mapper in SECTION_MAPPERS:
            lookup = resolve_section(sections, mapper.aliases)
            if not lookup.found:
                skipped += 1
                why = f"status={lookup.status}" if lookup.skipped else "absent or empty"
                self._record(
                    f"section {'/'.join(mapper.aliases)} skipped ({why})",
                    group=mapper.group,
                )
                continue
            group = mapper.build(sections)
            if group:
                self._merge(mapper.group, group)
            mapped += 1

        self._sections_mapped += mapped
        self._sections_skipped += skipped
        self._record(f"mapped {mapped} sections, skipped {skipped}", mapped=mapped, skipped=skipped)

        summary = build_external_summary(sections)
        if summary is not None:
            self._external_summary = summary
        if enrich_machine_info(self._machine, sections):
            self._record("machine info enriched from scan document")
        return self

    def set_admin(self, is_admin: bool) -> "SnapshotAssembler":
        self._machine.is_admin = bool(is_admin)
        return self

    # ---- other collectors ----

    def add_diagnostic_signals(
        self, signals: Optional[Mapping[str, Union[DiagnosticSignal, Mapping]]]
    ) -> "SnapshotAssembler":
        if signals is None:
            self._signals_collected = 0
            self._signals_unavailable = EXPECTED_SIGNALS
            return self

        collected = unavailable = 0
        for name, signal in signals.items():
            if not isinstance(signal, DiagnosticSignal):
                signal = DiagnosticSignal.from_dict(signal if isinstance(signal, Mapping) else {})
            self._merge(name, self._signal_metrics(name, signal))
            if signal.available:
                collected += 1
            else:
                unavailable += 1

        self._signals_collected = collected
        self._signals_unavailable = unavailable
        return self

    def _signal_metrics(self, name: str, signal: DiagnosticSignal) -> MetricGroup:
        if not signal.available:
            return {
                "available": create_unavailable(
                    "bool", signal.source, signal.reason or Reason.SIGNAL_UNAVAILABLE
                )
            }

        group: MetricGroup = {"available": create_available(True, "bool", signal.source)}
        if not isinstance(signal.value, Mapping):
            return group
        for key, raw in signal.value.items():
            value = to_metric_value(raw)
            if value is None:
                logger.debug("signal %s: field %s has no scalar value, skipped", name, key)
                continue
            if isinstance(raw, bool):
                unit = "bool"
            elif isinstance(raw, int):
                unit = "count"
            elif isinstance(raw, float):
                unit = ""
                value = to_metric_value(round(raw, 2))
            else:
                unit = ""
            group[str(key)] = create_available(value, unit, signal.source)
        return group

    def add_process_telemetry(
        self, telemetry: Optional[Union[ProcessTelemetry, Mapping]]
    ) -> "SnapshotAssembler":
        if isinstance(telemetry, Mapping):
            telemetry = ProcessTelemetry.from_dict(telemetry)
        if telemetry is None or not telemetry.available:
            self._process_summary = ProcessSummary(available=False)
            self._record("no process telemetry")
            return self

        summary = ProcessSummary(
            available=True,
            total_process_count=telemetry.total_process_count,
            source=telemetry.source,
        )
        if telemetry.top_by_cpu:
            top = telemetry.top_by_cpu[0]
            summary.top_cpu_process = top.name
            summary.top_cpu_percent = top.cpu_percent
        if telemetry.top_by_memory:
            top = telemetry.top_by_memory[0]
            summary.top_memory_process = top.name
            summary.top_memory_mb = top.working_set_mb
        self._process_summary = summary

        src = telemetry.source
        self._merge("processes", {
            "totalProcessCount": create_available(telemetry.total_process_count, "count", src),
            "accessDeniedCount": create_available(telemetry.access_denied_count, "count", src),
            "topCpuPercent": create_available(summary.top_cpu_percent, "%", src),
            "topMemoryMB": create_available(summary.top_memory_mb, "MB", src),
        })
        return self

    def add_network_diagnostics(
        self, diagnostics: Optional[Union[NetworkDiagnostics, Mapping]]
    ) -> "SnapshotAssembler":
        if isinstance(diagnostics, Mapping):
            diagnostics = NetworkDiagnostics.from_dict(diagnostics)
        if diagnostics is None or not diagnostics.available:
            self._network_summary = NetworkSummary(available=False)
            self._record("no network diagnostics")
            return self

        d = diagnostics
        self._network_summary = NetworkSummary(
            available=True,
            latency_p50_ms=d.latency_p50_ms,
            latency_p95_ms=d.latency_p95_ms,
            jitter_p95_ms=d.jitter_p95_ms,
            packet_loss_percent=d.loss_percent,
            dns_p95_ms=d.dns_p95_ms,
            gateway=d.gateway,
            download_mbps=d.download_mbps,
            source=d.source,
        )

        src = d.source
        group: MetricGroup = {
            "latencyP50Ms": create_available(d.latency_p50_ms, "ms", src),
            "latencyP95Ms": create_available(d.latency_p95_ms, "ms", src),
            "jitterP95Ms": create_available(d.jitter_p95_ms, "ms", src),
            "packetLossPercent": create_available(d.loss_percent, "%", src),
            "dnsP95Ms": create_available(d.dns_p95_ms, "ms", src),
        }
        if d.download_mbps is not None:
            group["downloadMbps"] = create_available(d.download_mbps, "Mbps", src)
        # fallback for ping metrics the scan did not provide
        for key in ("pingGoogle", "pingCloudflare", "avgLatency"):
            group[key] = create_available(d.latency_p50_ms, "ms", src, confidence=80)
        self._merge("network", group)
        return self

    def add_findings(self, findings: Optional[Iterable[Finding]]) -> "SnapshotAssembler":
        if findings:
            self._findings.extend(findings)
        return self

    # ---- finalisation ----

    def _repair(self) -> None:
        for group_name in sorted(self._metrics):
            group = self._metrics[group_name]
            for key in sorted(group):
                metric = group[key]
                if metric.available:
                    continue
                fixed = metric
                if not (isinstance(metric.reason, str) and metric.reason.strip()):
                    fixed = replace(fixed, reason=Reason.REASON_NOT_PROVIDED)
                    self._violations_repaired += 1
                    self._record(
                        f"contract violation repaired: {group_name}.{key} unavailable without reason",
                        group=group_name,
                        key=key,
                    )
                if metric.confidence != 0:
                    fixed = replace(fixed, confidence=0)
                    self._violations_repaired += 1
                    self._record(
                        f"contract violation repaired: {group_name}.{key} unavailable with "
                        f"confidence={metric.confidence}",
                        group=group_name,
                        key=key,
                    )
                if fixed is not metric:
                    group[key] = fixed

    def _quality(self) -> CollectionQuality:
        total = available = 0
        for group in self._metrics.values():
            for metric in group.values():
                total += 1
                if metric.available:
                    available += 1
        coverage = round(available / total * 100, 1) if total > 0 else 0.0
        return CollectionQuality(
            total=total,
            available=available,
            unavailable=total - available,
            coverage_percent=coverage,
            sections_mapped=self._sections_mapped,
            sections_skipped=self._sections_skipped,
            signals_collected=self._signals_collected,
            signals_unavailable=self._signals_unavailable,
            violations_repaired=self._violations_repaired,
        )

    def build(self) -> Snapshot:
        """Repair contract violations, compute quality, return a detached snapshot."""
        self._repair()
        quality = self._quality()
        self._record(
            f"build completed: {quality.available}/{quality.total} metrics available "
            f"({quality.coverage_percent}%)",
            coverage_percent=quality.coverage_percent,
        )
        return Snapshot(
            generated_at=self._generated_at,
            machine=replace(self._machine),
            metrics=MappingProxyType(
                {name: MappingProxyType(dict(group)) for name, group in self._metrics.items()}
            ),
            findings=list(self._findings),
            collection_quality=quality,
            sensor_status=copy.deepcopy(self._sensor_status),
            external_summary=copy.deepcopy(self._external_summary),
            process_summary=copy.deepcopy(self._process_summary),
            network_summary=copy.deepcopy(self._network_summary),
            build_log=list(self._log),
        )
