import pytest

from healthfusion.assembly import aggregate_max, first_available_wins, merge_into
from healthfusion.models.metrics import Reason, create_available, create_unavailable


def test_first_available_wins_keeps_available_current():
    current = create_available(40, "ms", "PS/NetworkLatency")
    candidate = create_available(55, "ms", "NetworkDiagnosticsCollector", confidence=80)
    assert first_available_wins(current, candidate) is current


def test_first_available_wins_replaces_unavailable_current():
    current = create_unavailable("ms", "PS", Reason.PROPERTY_NOT_FOUND)
    candidate = create_available(55, "ms", "NetworkDiagnosticsCollector", confidence=80)
    assert first_available_wins(current, candidate) is candidate
    assert first_available_wins(None, candidate) is candidate


def test_merge_into_reports_changes():
    group = {}
    assert merge_into(group, "k", create_unavailable("", "a", "x")) is True
    assert merge_into(group, "k", create_available(1, "", "b")) is True
    assert merge_into(group, "k", create_available(2, "", "c")) is False
    assert group["k"].number == 1


def test_aggregate_max_carries_winner_qualifier():
    metrics = [
        create_available(35.0, "°C", "LHM", qualifier="SSD"),
        create_unavailable("°C", "LHM", Reason.SENTINEL_ZERO, "HDD"),
        create_available(41.0, "°C", "LHM", qualifier="NVMe"),
    ]
    result = aggregate_max(metrics, "°C", "Derived")
    assert result.available
    assert result.number == pytest.approx(41.0)
    assert result.qualifier == "NVMe"
    assert result.source == "Derived"


def test_aggregate_max_without_valid_input():
    result = aggregate_max([create_unavailable("°C", "LHM", "x")], "°C", "Derived")
    assert result.available is False
    assert result.reason == Reason.NO_VALID_DISK_TEMPS
    assert aggregate_max([], "°C", "Derived", empty_reason="none").reason == "none"
