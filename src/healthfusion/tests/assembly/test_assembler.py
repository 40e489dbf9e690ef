from datetime import datetime, timezone

import pytest

from healthfusion.assembly import SnapshotAssembler
from healthfusion.assembly.builder import EXPECTED_SIGNALS
from healthfusion.models.metrics import NormalizedMetric, Reason, create_available
from healthfusion.models.sensors import HardwareSensors
from healthfusion.models.snapshot import Finding
from healthfusion.utils.audit import MemoryAuditSink


FIXED_NOW = datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def audit() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def assembler(audit) -> SnapshotAssembler:
    return SnapshotAssembler(audit=audit, clock=lambda: FIXED_NOW)


@pytest.fixture
def sensors() -> HardwareSensors:
    return HardwareSensors.from_dict({
        "cpu": {"tempC": {"value": 52.34, "available": True, "source": "LHM"}},
        "gpu": {
            "name": {"value": "RTX 3070", "available": True},
            "tempC": {"value": 61, "available": True},
            "loadPercent": {"value": 12.5, "available": True},
            "vramTotalMB": {"value": 8000, "available": True},
            "vramUsedMB": {"value": 9200, "available": True},
        },
        "disks": [
            {"name": {"value": "Samsung 980", "available": True}, "tempC": {"value": 44, "available": True}},
            {"name": {"value": "WD Blue", "available": True}, "tempC": {"value": 0, "available": True}},
            {"name": {"value": "USB", "available": True}, "tempC": {"available": False}},
        ],
    })


class TestHardwareMetrics:

    def test_cpu_metric(self, assembler, sensors):
        snap = assembler.add_cpu_metrics(sensors).build()
        metric = snap.metric("cpu", "cpuTempC")
        assert metric.available
        assert metric.number == pytest.approx(52.3)

    def test_cpu_missing(self, assembler):
        metric = assembler.add_cpu_metrics(None).build().metric("cpu", "cpuTempC")
        assert metric.reason == Reason.SENSOR_NOT_AVAILABLE

    def test_gpu_metrics(self, assembler, sensors):
        snap = assembler.add_gpu_metrics(sensors).build()
        assert snap.metric("gpu", "name").value.payload == "RTX 3070"
        assert snap.metric("gpu", "gpuTempC").number == pytest.approx(61)
        assert snap.metric("gpu", "vramTotalMB").available
        assert snap.metric("gpu", "vramUsedMB").reason == Reason.VRAM_USED_EXCEEDS_TOTAL

    def test_absent_gpu(self, assembler):
        snap = assembler.add_gpu_metrics(HardwareSensors()).build()
        assert snap.metric("gpu", "gpuTempC").reason == Reason.GPU_NOT_DETECTED
        assert snap.metric("gpu", "gpuLoadPercent").reason == Reason.GPU_NOT_DETECTED

    def test_storage_metrics(self, assembler, sensors):
        snap = assembler.add_storage_metrics(sensors).build()
        assert snap.metric("storage", "diskCount").number == 3
        assert snap.metric("storage", "disk_0_tempC").qualifier == "Samsung 980"
        assert snap.metric("storage", "disk_1_tempC").reason == Reason.SENTINEL_ZERO
        assert snap.metric("storage", "disk_2_tempC").reason == Reason.DISK_TEMP_NOT_AVAILABLE
        max_temp = snap.metric("storage", "maxDiskTempC")
        assert max_temp.number == pytest.approx(44)
        assert max_temp.qualifier == "Samsung 980"

    def test_no_disks(self, assembler):
        snap = assembler.add_storage_metrics(HardwareSensors()).build()
        count = snap.metric("storage", "diskCount")
        assert count.number == 0
        assert count.qualifier == "no_disks_detected"
        assert snap.metric("storage", "maxDiskTempC") is None


class TestSensorStatus:

    def test_defender_block_detected(self, assembler):
        sensors = HardwareSensors.from_dict({"exceptions": ["Access denied by Windows Defender"]})
        status = assembler.record_sensor_status(sensors).build().sensor_status
        assert status.blocked_by_defender is True
        assert status.sensors_available is False
        assert "Defender" in status.block_reason

    def test_driver_block_detected(self, assembler):
        status = assembler.record_sensor_status(None, ["WinRing0 failed to load"]).build().sensor_status
        assert status.blocked_by_driver is True

    def test_available(self, assembler, sensors):
        assert assembler.record_sensor_status(sensors).build().sensor_status.sensors_available


class TestScanDocument:

    def test_failed_section_is_skipped_and_leaks_nothing(self, assembler, audit):
        root = {"sections": {
            "OS": {"status": "OK", "data": {"Caption": "Windows 11"}},
            "Security": {"status": "error", "data": {"AntivirusStatus": "Enabled"}},
        }}
        snap = assembler.add_scan_document(root).build()
        assert "security" not in snap.metrics
        for group in snap.metrics.values():
            for metric in group.values():
                assert not (metric.available and metric.value.payload == "Enabled")
        assert snap.metric("os", "caption").value.payload == "Windows 11"
        assert snap.collection_quality.sections_mapped == 1
        assert snap.collection_quality.sections_skipped == 9
        assert any("Security skipped (status=error)" in m for m in audit.messages("assembler"))

    def test_envelope_and_machine_info(self, assembler):
        root = {"scan_powershell": {"sections": {
            "MachineIdentity": {"ComputerName": "PC-42"},
            "OS": {"Caption": "Windows 10"},
        }}}
        snap = assembler.add_scan_document(root).set_admin(True).build()
        assert snap.machine.hostname == "PC-42"
        assert snap.machine.is_admin is True

    def test_no_document(self, assembler):
        snap = assembler.add_scan_document(None).build()
        assert snap.collection_quality.sections_mapped == 0
        assert snap.external_summary is None


class TestOtherCollectors:

    def test_signals_missing_entirely(self, assembler):
        quality = assembler.add_diagnostic_signals(None).build().collection_quality
        assert quality.signals_collected == 0
        assert quality.signals_unavailable == EXPECTED_SIGNALS

    def test_signals_become_groups(self, assembler):
        snap = assembler.add_diagnostic_signals({
            "whea": {"available": True, "source": "WHEA", "value": {"count": 2, "fatal": False, "rate": 0.123}},
            "dpc": {"available": False, "reason": "timeout"},
        }).build()
        assert snap.metric("whea", "available").available
        assert snap.metric("whea", "count").number == 2
        assert snap.metric("whea", "fatal").unit == "bool"
        assert snap.metric("whea", "rate").number == pytest.approx(0.12)
        assert snap.metric("dpc", "available").reason == "timeout"
        assert snap.collection_quality.signals_collected == 1
        assert snap.collection_quality.signals_unavailable == 1

    def test_process_telemetry(self, assembler):
        snap = assembler.add_process_telemetry({
            "available": True,
            "totalProcessCount": 210,
            "topByCpu": [{"name": "chrome.exe", "cpuPercent": 23.5}],
            "topByMemory": [{"name": "code.exe", "workingSetMB": 812}],
        }).build()
        assert snap.process_summary.top_cpu_process == "chrome.exe"
        assert snap.process_summary.top_memory_mb == pytest.approx(812)
        assert snap.metric("processes", "totalProcessCount").number == 210

    def test_network_diagnostics_backfill_only_missing_ping(self, assembler):
        root = {"sections": {"NetworkLatency": {"ping": [
            {"target": "8.8.8.8", "success": True, "latencyMs": 18},
        ]}}}
        snap = (
            assembler.add_scan_document(root)
            .add_network_diagnostics({"available": True, "overallLatencyMsP50": 25})
            .build()
        )
        assert snap.metric("network", "pingGoogle").number == 18
        assert snap.metric("network", "pingGoogle").confidence == 100
        assert snap.metric("network", "pingCloudflare").number == 25
        assert snap.metric("network", "pingCloudflare").confidence == 80

    def test_findings(self, assembler):
        snap = assembler.add_findings([Finding("Disk almost full", "warning")]).build()
        assert snap.findings[0].title == "Disk almost full"


class TestBuild:

    def test_non_text_sensor_reason_is_kept_as_text(self, assembler):
        sensors = HardwareSensors.from_dict({"cpu": {"tempC": {"value": None, "available": False, "reason": 5}}})
        metric = assembler.add_cpu_metrics(sensors).build().metric("cpu", "cpuTempC")
        assert metric.reason == "5"
        assert metric.is_consistent()

    def test_non_text_reason_is_repaired(self, assembler):
        odd = NormalizedMetric(value=None, unit="", source="x", confidence=0, available=False, reason=5)
        snap = assembler.add_metrics("custom", {"odd": odd}).build()
        assert snap.metric("custom", "odd").reason == Reason.REASON_NOT_PROVIDED
        assert snap.collection_quality.violations_repaired == 1

    def test_contract_violations_are_repaired_and_audited(self, assembler, audit):
        broken = NormalizedMetric(value=None, unit="", source="x", confidence=40, available=False, reason="")
        snap = assembler.add_metrics("custom", {"bad": broken}).build()
        fixed = snap.metric("custom", "bad")
        assert fixed.reason == Reason.REASON_NOT_PROVIDED
        assert fixed.confidence == 0
        assert fixed.is_consistent()
        assert snap.collection_quality.violations_repaired == 2
        assert len([m for m in audit.messages("assembler") if "contract violation" in m]) == 2

    def test_every_metric_is_consistent(self, assembler, sensors):
        snap = (
            assembler.add_cpu_metrics(sensors)
            .add_gpu_metrics(sensors)
            .add_storage_metrics(sensors)
            .build()
        )
        for group in snap.metrics.values():
            for metric in group.values():
                assert metric.is_consistent()

    def test_build_is_idempotent(self, assembler, sensors):
        assembler.add_cpu_metrics(sensors).add_gpu_metrics(sensors).add_storage_metrics(sensors)
        assembler.add_metrics("custom", {
            "bad": NormalizedMetric(value=None, unit="", source="x", confidence=10, available=False),
        })
        first = assembler.build()
        second = assembler.build()
        assert first.collection_quality == second.collection_quality
        assert first.metrics == second.metrics
        assert first.generated_at == second.generated_at == FIXED_NOW.isoformat()

    def test_coverage(self, assembler):
        assembler.add_metrics("g", {
            "a": create_available(1, "", "s"),
            "b": create_available(2, "", "s"),
        })
        assembler.add_cpu_metrics(None)
        quality = assembler.build().collection_quality
        assert quality.total == 3
        assert quality.available == 2
        assert quality.coverage_percent == pytest.approx(66.7)

    def test_coverage_is_zero_without_metrics(self, assembler):
        quality = assembler.build().collection_quality
        assert quality.total == 0
        assert quality.coverage_percent == 0

    def test_snapshot_is_detached(self, assembler):
        assembler.add_cpu_metrics(None)
        snap = assembler.build()
        assembler.add_metrics("later", {"x": create_available(1, "", "s")})
        assert "later" not in snap.metrics

    def test_snapshot_metrics_are_read_only(self, assembler):
        snap = assembler.add_cpu_metrics(None).build()
        with pytest.raises(TypeError):
            snap.metrics["cpu"]["cpuTempC"] = create_available(1, "", "s")
        with pytest.raises(TypeError):
            snap.metrics["extra"] = {}
