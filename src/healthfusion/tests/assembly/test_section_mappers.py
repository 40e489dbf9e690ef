import pytest

from healthfusion.assembly import build_external_summary
from healthfusion.assembly.section_mappers import (
    enrich_machine_info,
    map_devices,
    map_memory,
    map_network,
    map_security,
    map_startup,
    map_updates,
)
from healthfusion.models.metrics import Reason
from healthfusion.models.snapshot import MachineInfo


def test_memory_mapping_uses_alias_and_marks_missing_properties():
    group = map_memory({"MemoryInfo": {"TotalMemoryGB": 15.94, "UsedMemoryPercent": "63.456"}})
    assert group["totalGB"].number == pytest.approx(15.94)
    assert group["usedPercent"].number == pytest.approx(63.46)
    assert group["availableGB"].available is False
    assert group["availableGB"].reason == Reason.PROPERTY_NOT_FOUND


def test_network_latency_picks_targets_and_average():
    sections = {
        "NetworkLatency": {
            "ping": [
                {"target": "8.8.8.8", "success": True, "latencyMs": 20},
                {"target": "1.1.1.1", "success": True, "latencyMs": 10},
                {"target": "9.9.9.9", "success": False, "latencyMs": 999},
            ]
        }
    }
    group = map_network(sections)
    assert group["pingGoogle"].number == 20
    assert group["pingCloudflare"].number == 10
    assert group["avgLatency"].number == pytest.approx(15.0)


def test_updates_accept_renamed_properties():
    group = map_updates({"WindowsUpdateInfo": {"PendingUpdatesCount": "3", "RebootPending": "yes"}})
    assert group["pendingCount"].number == 3
    assert group["rebootRequired"].value.payload is True


def test_startup_list_counts_high_impact():
    group = map_startup({"StartupPrograms": [
        {"Name": "a", "StartupImpact": "High"},
        {"Name": "b", "StartupImpact": "Low"},
    ]})
    assert group["totalCount"].number == 2
    assert group["highImpactCount"].number == 1


def test_devices_explicit_counts_override_list():
    group = map_devices({"DevicesDrivers": {
        "Devices": [{"Status": "OK"}, {"Status": "Error"}],
        "problemDeviceCount": 4,
    }})
    assert group["totalDevices"].number == 2
    assert group["problemDevices"].number == 4


def test_external_summary_none_when_nothing_found():
    assert build_external_summary({"OS": {"Caption": "x"}}) is None


def test_external_summary_collects_context_sections():
    summary = build_external_summary({
        "WindowsUpdate": {"pendingCount": 2, "rebootRequired": False},
        "Printers": {"printers": [{"name": "HP"}, {"Name": "Canon"}]},
    })
    assert summary.updates.pending_count == 2
    assert summary.updates.reboot_required is False
    assert summary.printers.names == ["HP", "Canon"]
    assert summary.audio is None


def test_enrich_machine_info_sets_fields():
    machine = MachineInfo()
    changed = enrich_machine_info(machine, {
        "MachineIdentity": {"ComputerName": "DESKTOP-1", "TotalRAM_GB": 32},
        "OS": {"Caption": "Windows 11 Pro", "BuildNumber": "22631"},
    })
    assert machine.hostname == "DESKTOP-1"
    assert machine.total_ram_gb == pytest.approx(32.0)
    assert machine.os_version == "Windows 11 Pro"
    assert changed["os_build"] == "22631"


@pytest.mark.parametrize("raw, expected", [(True, True), ("True", True), (1, True), ("no", False), (0, False)])
def test_security_flags_accept_bool_words(raw, expected):
    group = map_security({"Security": {"UacEnabled": raw}})
    assert group["uacEnabled"].value.payload is expected
    assert group["secureBootEnabled"].reason == Reason.PROPERTY_NOT_FOUND


def test_security_flag_that_is_not_a_bool_is_missing():
    group = map_security({"Security": {"UacEnabled": "sometimes"}})
    assert group["uacEnabled"].available is False
