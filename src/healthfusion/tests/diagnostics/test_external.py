from healthfusion.diagnostics import extract_metadata, extract_score_data, parse_penalties
from healthfusion.models.external import Penalty


def test_penalties_from_array():
    penalties = parse_penalties([
        {"type": "warning", "source": "Storage", "penalty": 5, "msg": "Disk 91% full"},
        {"type": "critical", "section": "Security", "points": "15", "message": "Firewall off"},
        "garbage",
    ])
    assert penalties == [
        Penalty("warning", "Storage", 5, "Disk 91% full"),
        Penalty("critical", "Security", 15, "Firewall off"),
    ]


def test_penalties_from_object_keyed_by_source():
    penalties = parse_penalties({
        "Storage": {"type": "warning", "penalty": 5, "msg": "low space"},
        "Updates": 3,
        "Security": "Defender disabled",
        "Broken": [1, 2],
    })
    assert Penalty("warning", "Storage", 5, "low space") in penalties
    assert Penalty(source="Updates", penalty=3) in penalties
    assert Penalty(source="Security", msg="Defender disabled") in penalties
    assert len(penalties) == 3


def test_penalties_on_unknown_shape():
    assert parse_penalties(None) == []
    assert parse_penalties(42) == []


def test_score_v2_inside_envelope():
    root = {"scan_powershell": {"scoreV2": {
        "score": 78,
        "baseScore": 100,
        "totalPenalty": 22,
        "grade": "B",
        "breakdown": {"critical": 1, "collectorErrors": 2, "timeouts": 1},
        "topPenalties": [{"type": "critical", "source": "Security", "penalty": 15}],
    }}}
    data = extract_score_data(root)
    assert data.score == 78
    assert data.grade == "B"
    assert data.breakdown.collector_errors == 2
    assert data.breakdown.timeouts == 1
    assert data.top_penalties[0].source == "Security"
    assert data.legacy is False


def test_legacy_summary_fallback():
    data = extract_score_data({"summary": {"score": 64, "criticalCount": 2, "warningCount": 5}})
    assert data.legacy is True
    assert data.score == 64
    assert data.total_penalty == 36
    assert data.grade == "A"
    assert data.breakdown.critical == 2
    assert data.breakdown.warnings == 5


def test_no_score_at_all():
    data = extract_score_data({"sections": {}})
    assert data.score == 100
    assert data.grade == "N/A"
    assert data.top_penalties == []


def test_metadata():
    meta = extract_metadata({"metadata": {
        "version": "2.3.1",
        "runId": "abc",
        "timestamp": "2026-01-15T09:30:00Z",
        "isAdmin": "true",
        "partialFailure": True,
        "durationSeconds": 41.5,
    }})
    assert meta.version == "2.3.1"
    assert meta.is_admin is True
    assert meta.partial_failure is True
    assert meta.duration_seconds == 41.5
    assert meta.redact_level == "standard"


def test_metadata_missing():
    assert extract_metadata({}).version == "unknown"
