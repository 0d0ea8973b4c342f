import io

from solbot.monitoring import AuditLog, AuditNotifier, FanoutNotifier, LogNotifier, MemoryNotifier, Monitor


def test_audit_log_round_trip(tmp_path):
    audit = AuditLog(tmp_path / "logs" / "audit.log", run_id="run-1", config_hash="abc")
    audit.log("tick", {"user_id": "alice", "price": 150.0})
    audit.log("trade_executed", {"user_id": "alice"})

    records = audit.events()
    assert [record["event"] for record in records] == ["tick", "trade_executed"]
    assert records[0]["run_id"] == "run-1"
    assert records[0]["config_hash"] == "abc"
    assert audit.events("tick")[0]["payload"]["price"] == 150.0


def test_monitor_fans_out_alerts(tmp_path):
    audit = AuditLog(tmp_path / "audit.log")
    stream = io.StringIO()
    memory = MemoryNotifier()
    monitor = Monitor(FanoutNotifier([LogNotifier(stream=stream), AuditNotifier(audit), memory]))

    monitor.store_unavailable("alice", "disk full")

    assert memory.messages == [("STORE_UNAVAILABLE", "alice: disk full")]
    assert "[SOLBOT] STORE_UNAVAILABLE: alice: disk full" in stream.getvalue()
    alerts = audit.events("alert")
    assert alerts[0]["payload"] == {"alert": "STORE_UNAVAILABLE", "message": "alice: disk full"}
