import logging

from healthfusion.utils.audit import (
    AuditSink,
    LoggingAuditSink,
    MemoryAuditSink,
    TeeAuditSink,
    default_sink,
)


def test_memory_sink_keeps_order_and_filters():
    sink = MemoryAuditSink()
    sink.record("fusion", "Local score: 90")
    sink.record("assembler", "build completed", coverage_percent=50.0)
    sink.record("fusion", "Final: 82 (B+)")
    assert sink.messages("fusion") == ["Local score: 90", "Final: 82 (B+)"]
    assert len(sink.messages()) == 3
    assert sink.events[1].fields == {"coverage_percent": 50.0}
    sink.clear()
    assert sink.events == []


def test_logging_sink(caplog):
    logger = logging.getLogger("healthfusion.test.audit")
    with caplog.at_level(logging.DEBUG, logger="healthfusion.test.audit"):
        LoggingAuditSink(logger).record("domains", "Divergence 12", coherent=False)
    assert "[domains] Divergence 12" in caplog.text


def test_tee_fans_out():
    a, b = MemoryAuditSink(), MemoryAuditSink()
    TeeAuditSink(a, b).record("report", "done")
    assert a.messages() == b.messages() == ["done"]


def test_default_sink_remembers_and_logs(caplog):
    logger = logging.getLogger("healthfusion.test.default")
    sink = default_sink(logger)
    with caplog.at_level(logging.DEBUG, logger="healthfusion.test.default"):
        sink.record("fusion", "Raw: 82")
    assert sink.messages() == ["Raw: 82"]
    assert "Raw: 82" in caplog.text


def test_sinks_satisfy_protocol():
    assert isinstance(MemoryAuditSink(), AuditSink)
    assert isinstance(TeeAuditSink(), AuditSink)
