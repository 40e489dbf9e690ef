import pytest

from healthfusion.domains import (
    HealthDomainMapper,
    domain_for_section,
    severity_for_penalty_type,
    severity_for_score,
)
from healthfusion.models.collectors import DriverEntry, DriverInventory, UpdateStatus
from healthfusion.models.external import ExternalScoreData, Penalty
from healthfusion.models.metrics import create_available, create_unavailable
from healthfusion.models.report import HealthDomain, Severity
from healthfusion.models.sensors import HardwareSensors
from healthfusion.models.snapshot import CollectionQuality, MachineInfo, SensorStatus, Snapshot
from healthfusion.scoring import ScoreFusionEngine
from healthfusion.utils.audit import MemoryAuditSink


@pytest.fixture
def audit() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def mapper(audit) -> HealthDomainMapper:
    return HealthDomainMapper(audit=audit)


def _by_domain(sections):
    return {s.domain: s for s in sections}


class TestHelpers:

    def test_domain_lookup(self):
        assert domain_for_section("SmartDetails") is HealthDomain.STORAGE
        assert domain_for_section("networklatency") is HealthDomain.NETWORK
        assert domain_for_section("Bluetooth") is None
        assert domain_for_section(None) is None

    @pytest.mark.parametrize("score, severity", [
        (100, Severity.EXCELLENT), (99, Severity.HEALTHY), (70, Severity.HEALTHY),
        (69, Severity.WARNING), (60, Severity.WARNING), (59, Severity.DEGRADED),
        (40, Severity.DEGRADED), (39, Severity.CRITICAL), (0, Severity.CRITICAL),
    ])
    def test_score_severity(self, score, severity):
        assert severity_for_score(score) is severity

    @pytest.mark.parametrize("kind, severity", [
        ("critical", Severity.CRITICAL),
        ("COLLECTOR_ERROR", Severity.DEGRADED),
        ("warn", Severity.WARNING),
        ("Warning", Severity.WARNING),
        ("info", Severity.HEALTHY),
        ("", Severity.HEALTHY),
    ])
    def test_penalty_severity(self, kind, severity):
        assert severity_for_penalty_type(kind) is severity


class TestMap:

    def test_always_eight_domains_in_order(self, mapper):
        sections = mapper.map(None)
        assert [s.domain for s in sections] == list(HealthDomain)
        for s in sections:
            assert s.has_data is False
            assert s.collection_status == "MISSING"
            assert s.status_message == "Data not available"
            assert s.severity is Severity.UNKNOWN

    def test_status_penalties(self, mapper):
        sections = _by_domain(mapper.map({
            "OS": {"status": "OK", "data": {"a": 1}},
            "Storage": {"status": "FAILED"},
            "SmartDetails": {"status": "PARTIAL", "data": {"x": 1}},
            "Memory": {"TotalMemoryGB": 16},
            "EventLogs": {"status": "Error"},
        }))
        assert sections[HealthDomain.OS].score == 100
        assert sections[HealthDomain.OS].severity is Severity.EXCELLENT
        assert sections[HealthDomain.RAM].score == 100

        storage = sections[HealthDomain.STORAGE]
        assert storage.score == 75
        assert storage.collection_status == "FAILED"
        assert storage.severity is Severity.HEALTHY

        stability = sections[HealthDomain.SYSTEM_STABILITY]
        assert stability.score == 80
        assert stability.collection_status == "FAILED"

    def test_penalties_become_findings(self, mapper):
        penalties = [
            Penalty("critical", "Security", 15, "Firewall off"),
            Penalty("warning", "Storage", 30, "Disk almost full"),
            Penalty("critical", "Storage", 20, "SMART failure"),
            Penalty("warning", "Unknown", 50, "ignored"),
        ]
        sections = _by_domain(mapper.map({"Storage": {"Drives": [1]}}, penalties))
        storage = sections[HealthDomain.STORAGE]
        assert storage.score == 50
        assert storage.severity is Severity.DEGRADED
        assert storage.status_message == "Action required"
        assert [f.severity for f in storage.findings] == [Severity.WARNING, Severity.CRITICAL]
        assert storage.findings[1].penalty_applied == 20
        assert storage.recommendations[0] == "Free up disk space"
        # Security has no domain, so the penalty goes nowhere
        assert sections[HealthDomain.OS].findings == []

    def test_score_clamped_at_zero(self, mapper):
        penalties = [Penalty("critical", "Memory", 80, "a"), Penalty("critical", "Memory", 80, "b")]
        ram = _by_domain(mapper.map({"Memory": {"status": "FAILED"}}, penalties))[HealthDomain.RAM]
        assert ram.score == 0
        assert ram.severity is Severity.CRITICAL

    def test_penalty_without_section_data_keeps_domain_missing(self, mapper):
        penalties = [Penalty("warning", "Network", 10, "slow")]
        network = _by_domain(mapper.map({}, penalties))[HealthDomain.NETWORK]
        assert network.has_data is False
        assert network.score == 0

    def test_snapshot_evidence(self, mapper):
        snapshot = Snapshot(
            generated_at="2026-01-15T09:30:00+00:00",
            machine=MachineInfo(),
            metrics={
                "memory": {
                    "totalGB": create_available(15.9, "GB", "PS/Memory"),
                    "usedPercent": create_available(63.5, "%", "PS/Memory"),
                    "pageFileUsagePercent": create_unavailable("%", "PS/Memory", "property_not_found"),
                },
                "storage": {"diskCount": create_available(2, "count", "LHM")},
            },
            findings=[],
            collection_quality=CollectionQuality(),
            sensor_status=SensorStatus(),
        )
        sections = _by_domain(mapper.map({"Memory": {"a": 1}}, snapshot=snapshot))
        ram = sections[HealthDomain.RAM]
        assert ram.evidence == {"Total": "15.9 GB", "Used": "63.5%"}
        assert sections[HealthDomain.STORAGE].evidence == {"Disks": "2"}


class TestInjection:

    def test_sensor_evidence(self, mapper):
        sections = mapper.map(None)
        sensors = HardwareSensors.from_dict({
            "cpu": {"tempC": {"value": 48.26, "available": True}},
            "gpu": {
                "name": {"value": "RTX 3070", "available": True},
                "tempC": {"value": 55, "available": True},
                "loadPercent": {"value": 12.4, "available": True},
                "vramTotalMB": {"value": 8192, "available": True},
                "vramUsedMB": {"value": 2048, "available": True},
            },
            "disks": [
                {"name": {"value": "NVMe", "available": True}, "tempC": {"value": 41, "available": True}},
                {"tempC": {"value": 37, "available": True}},
            ],
        })
        mapper.inject_sensors(sections, sensors)
        by = _by_domain(sections)

        cpu = by[HealthDomain.CPU]
        assert cpu.evidence["Temperature"] == "48.3°C"
        assert cpu.has_data is True
        # evidence never touches the score
        assert cpu.score == 0

        gpu = by[HealthDomain.GPU].evidence
        assert gpu["GPU"] == "RTX 3070"
        assert gpu["Load"] == "12%"
        assert gpu["VRAM Total"] == "8192 MB"
        assert gpu["VRAM Used"] == "2048 MB (25%)"

        storage = by[HealthDomain.STORAGE].evidence
        assert storage["Max disk temperature"] == "41°C"
        assert storage["Disk 1"] == "NVMe: 41°C"
        assert storage["Disk 2"] == "Disk 2: 37°C"

    def test_no_sensors_is_a_noop(self, mapper):
        sections = mapper.map(None)
        mapper.inject_sensors(sections, None)
        assert all(not s.evidence for s in sections)

    def test_driver_fallback_healthy(self, mapper, audit):
        sections = mapper.map(None)
        inventory = DriverInventory(available=True, drivers=[
            DriverEntry("nvlddmkm", "Display"),
            DriverEntry("e1d", "Net"),
            DriverEntry("e2d", "Net", signed=False),
        ])
        mapper.inject_drivers(sections, inventory)
        drivers = _by_domain(sections)[HealthDomain.DRIVERS]
        assert drivers.score == 85
        assert drivers.severity is Severity.HEALTHY
        assert drivers.collection_status == "DRIVER_INVENTORY_FALLBACK"
        assert drivers.evidence["Drivers detected"] == "3"
        assert drivers.evidence["Unsigned"] == "1"
        assert drivers.evidence["Classes"] == "Net (2), Display (1)"
        assert audit.messages("domains") == ["Drivers domain filled from inventory: 85"]

    def test_driver_fallback_outdated(self, mapper):
        sections = mapper.map(None)
        inventory = DriverInventory(available=True, drivers=[DriverEntry("x", update_status="Outdated")])
        mapper.inject_drivers(sections, inventory)
        drivers = _by_domain(sections)[HealthDomain.DRIVERS]
        assert drivers.score == 70
        assert drivers.severity is Severity.WARNING

    def test_driver_inventory_does_not_override_scan_score(self, mapper):
        sections = mapper.map({"DevicesDrivers": {"status": "PARTIAL", "data": {"a": 1}}})
        mapper.inject_drivers(sections, DriverInventory(available=True, drivers=[DriverEntry("x")]))
        drivers = _by_domain(sections)[HealthDomain.DRIVERS]
        assert drivers.score == 95
        assert drivers.collection_status == "PARTIAL"

    def test_unavailable_inventory_is_ignored(self, mapper):
        sections = mapper.map(None)
        mapper.inject_drivers(sections, DriverInventory(available=False, drivers=[DriverEntry("x")]))
        assert _by_domain(sections)[HealthDomain.DRIVERS].has_data is False

    def test_update_evidence(self, mapper):
        sections = mapper.map(None)
        mapper.inject_updates(sections, UpdateStatus(available=True, pending_count=3, reboot_required=True))
        os_section = _by_domain(sections)[HealthDomain.OS]
        assert os_section.evidence == {
            "Pending updates": "3",
            "Update status": "Updates pending",
            "Reboot required": "Yes",
        }
        assert os_section.has_data is True
        assert os_section.score == 0


class TestReportRecords:

    def test_divergence(self, mapper):
        final = ScoreFusionEngine(audit=MemoryAuditSink()).fuse(90, 70, 85)
        record = mapper.divergence(ExternalScoreData(score=70, grade="B"), final)
        assert record.delta == 12
        assert record.is_coherent is False
        assert record.as_dict()["delta"] == 12
        assert record.source_of_truth == "fused score"

    def test_recommendations_sorted_by_priority(self, mapper):
        penalties = [
            Penalty("info", "OS", 1, "a"),
            Penalty("warning", "Storage", 5, "b"),
            Penalty("critical", "Memory", 10, "c"),
            Penalty("collector_error", "Network", 3, "d"),
            Penalty("critical", "GPU", 10, "e"),
            Penalty("critical", "CPU", 10, "beyond the limit"),
        ]
        recs = mapper.recommendations(penalties)
        assert len(recs) == 5
        assert [r.priority for r in recs] == [
            Severity.CRITICAL, Severity.CRITICAL, Severity.DEGRADED, Severity.WARNING, Severity.HEALTHY,
        ]
        assert recs[0].title == "Issue: Memory"
        assert recs[0].domain is HealthDomain.RAM
        assert all(r.description != "beyond the limit" for r in recs)
