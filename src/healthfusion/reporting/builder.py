"""End-to-end report building for one scan.

``HealthReportBuilder.build`` takes the raw scan document plus whatever the
other collectors managed to produce and returns the assembled snapshot and
the fused health report. It never raises for bad input: an unreadable
document yields a FAILED report with a single ``PARSE_ERROR``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from healthfusion.assembly import SnapshotAssembler
from healthfusion.config.settings import Settings
from healthfusion.diagnostics import (
    STATUS_FAILED,
    STATUS_PARTIAL,
    analyze,
    apply_confidence_gating,
    extract_metadata,
    extract_score_data,
)
from healthfusion.domain.exceptions import DocumentParseError
from healthfusion.domains import HealthDomainMapper, severity_for_score
from healthfusion.models.collectors import (
    DiagnosticSignal,
    DriverInventory,
    NetworkDiagnostics,
    ProcessTelemetry,
    UpdateStatus,
)
from healthfusion.models.external import ScanError
from healthfusion.models.report import HealthReport, Severity
from healthfusion.models.sensors import HardwareSensors
from healthfusion.models.snapshot import Finding, Snapshot
from healthfusion.normalization import MetricNormalizer, RuleSet
from healthfusion.resolution import locate_sections, parse_document
from healthfusion.scoring import ConfidenceCalculator, ConfidenceModel, ScoreFusionEngine, compute_local_score
from healthfusion.utils.audit import AuditEvent, AuditSink, LoggingAuditSink, MemoryAuditSink, TeeAuditSink

logger = logging.getLogger(__name__)

PARSE_ERROR_MESSAGE = "Unable to analyse scan results"
CAUTION_VERDICTS = {
    STATUS_FAILED: "Collection failed: interpret with caution",
    STATUS_PARTIAL: "Collection partial: interpret with caution",
}


@dataclass
class ReportResult:
    report: HealthReport
    snapshot: Snapshot
    events: List[AuditEvent] = field(default_factory=list)

    def as_dict(self, include_snapshot: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {"report": self.report.as_dict()}
        if include_snapshot:
            out["snapshot"] = self.snapshot.as_dict()
        return out


def _coerce(value, cls):
    if isinstance(value, Mapping):
        return cls.from_dict(value)
    return value


class HealthReportBuilder:
    COMPONENT = "report"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        audit: Optional[AuditSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or Settings()
        self.clock = clock
        self.normalizer = MetricNormalizer(RuleSet.from_settings(self.settings.normalization))
        self.confidence = ConfidenceCalculator.from_settings(self.settings.confidence)
        self._extra_sink = audit if audit is not None else LoggingAuditSink(logger)

    def build(
        self,
        document: Union[str, bytes, Mapping],
        sensors: Optional[Union[HardwareSensors, Mapping]] = None,
        drivers: Optional[Union[DriverInventory, Mapping]] = None,
        updates: Optional[Union[UpdateStatus, Mapping]] = None,
        signals: Optional[Mapping[str, Union[DiagnosticSignal, Mapping]]] = None,
        process: Optional[Union[ProcessTelemetry, Mapping]] = None,
        network: Optional[Union[NetworkDiagnostics, Mapping]] = None,
        findings: Optional[Iterable[Finding]] = None,
        source_name: Optional[str] = None,
    ) -> ReportResult:
        # one memory sink per scan so the trail never mixes runs
        memory = MemoryAuditSink()
        audit = TeeAuditSink(memory, self._extra_sink)

        sensors = HardwareSensors.from_dict(sensors) if isinstance(sensors, Mapping) else sensors
        drivers = _coerce(drivers, DriverInventory)
        updates = _coerce(updates, UpdateStatus)

        try:
            root = parse_document(document, source_name=source_name)
        except DocumentParseError as e:
            logger.warning("Scan document unusable: %s", e.message)
            audit.record(self.COMPONENT, f"parse failure: {e.message}", error_code=e.error_code)
            snapshot = self._assemble(None, sensors, signals, process, network, findings, audit)
            report = self._parse_failure_report(e, audit)
            return ReportResult(report, snapshot, list(memory.events))

        snapshot = self._assemble(root, sensors, signals, process, network, findings, audit)
        report = self._report(root, snapshot, sensors, drivers, updates, audit)
        return ReportResult(report, snapshot, list(memory.events))

    def _assemble(self, root, sensors, signals, process, network, findings, audit) -> Snapshot:
        assembler = SnapshotAssembler(self.normalizer, audit, self.clock)
        assembler.add_cpu_metrics(sensors)
        assembler.add_gpu_metrics(sensors)
        assembler.add_storage_metrics(sensors)
        assembler.record_sensor_status(sensors)
        if root is not None:
            assembler.add_scan_document(root)
            assembler.set_admin(extract_metadata(root).is_admin)
        assembler.add_diagnostic_signals(signals)
        assembler.add_process_telemetry(process)
        assembler.add_network_diagnostics(network)
        assembler.add_findings(findings)
        return assembler.build()

    def _report(
        self,
        root: Mapping,
        snapshot: Snapshot,
        sensors: Optional[HardwareSensors],
        drivers: Optional[DriverInventory],
        updates: Optional[UpdateStatus],
        audit: AuditSink,
    ) -> HealthReport:
        metadata = extract_metadata(root)
        external = extract_score_data(root)
        diagnostics = analyze(root, sensors, self.normalizer)

        logical = diagnostics.collector_errors_logical
        if metadata.partial_failure or diagnostics.collection_status == STATUS_FAILED:
            logical = max(logical, 1)
        diagnostics = replace(diagnostics, collector_errors_logical=logical)

        mapper = HealthDomainMapper(audit)
        sections = mapper.map(locate_sections(root), external.top_penalties, snapshot)
        mapper.inject_drivers(sections, drivers)
        mapper.inject_updates(sections, updates)
        mapper.inject_sensors(sections, diagnostics.sanitized_sensors)

        confidence = self.confidence.compute(
            sections_with_data=sum(1 for s in sections if s.has_data),
            sensors=diagnostics.sanitized_sensors,
            external=external,
            partial_failure=metadata.partial_failure,
            collector_errors_logical=logical,
            missing_data=diagnostics.missing_data,
            errors=diagnostics.errors,
        )
        confidence = apply_confidence_gating(confidence, diagnostics)

        local = compute_local_score(sections)
        final = ScoreFusionEngine(self.settings.fusion, audit).fuse(
            local,
            external.score,
            confidence.confidence_score,
            collector_errors_logical=logical,
            missing_data_count=len(diagnostics.missing_data),
            collection_status=diagnostics.collection_status,
        )

        verdict = CAUTION_VERDICTS.get(diagnostics.collection_status, final.verdict)
        report = HealthReport(
            global_score=final.final_score,
            grade=final.grade,
            verdict=verdict,
            severity=severity_for_score(final.final_score),
            sections=sections,
            divergence=mapper.divergence(external, final),
            confidence_model=confidence,
            final_score=final,
            recommendations=mapper.recommendations(external.top_penalties),
            errors=list(diagnostics.errors),
            missing_data=list(diagnostics.missing_data),
            collector_errors_logical=logical,
            collection_status=diagnostics.collection_status,
            metadata=metadata,
            external_score=external,
        )
        audit.record(
            self.COMPONENT,
            f"report built: {report.global_score} ({report.grade}), confidence {confidence.confidence_level}",
            collection_status=report.collection_status,
        )
        return report

    def _parse_failure_report(self, error: DocumentParseError, audit: AuditSink) -> HealthReport:
        sections = HealthDomainMapper(audit).map(None)
        return HealthReport(
            global_score=0,
            verdict=PARSE_ERROR_MESSAGE,
            severity=Severity.UNKNOWN,
            sections=sections,
            confidence_model=ConfidenceModel(warnings=[PARSE_ERROR_MESSAGE]),
            errors=[ScanError(code=error.error_code, message=error.message)],
            collector_errors_logical=1,
            collection_status=STATUS_FAILED,
        )
