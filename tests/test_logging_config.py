import datetime
import logging

from relay.logging_config import DailyFileHandler, LocalTimezoneFormatter


def _record(msg: str) -> logging.LogRecord:
    return logging.LogRecord("relay.test", logging.INFO, __file__, 1, msg, None, None)


def test_daily_file_handler_writes_todays_file(tmp_path):
    handler = DailyFileHandler(tmp_path / "logs", prefix="relay")
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    try:
        handler.emit(_record("segment 0 finished"))
    finally:
        handler.close()

    path = tmp_path / "logs" / f"relay-{datetime.date.today().isoformat()}.log"
    assert path.read_text(encoding="utf-8") == "INFO segment 0 finished\n"


def test_daily_file_handler_prunes_old_files(tmp_path):
    for day in ("2024-01-01", "2024-01-02", "2024-01-03"):
        (tmp_path / f"relay-{day}.log").write_text("old\n", encoding="utf-8")

    handler = DailyFileHandler(tmp_path, prefix="relay", retention_days=2)
    try:
        handler.emit(_record("hello"))
    finally:
        handler.close()

    remaining = sorted(p.name for p in tmp_path.glob("relay-*.log"))
    assert len(remaining) == 2
    assert "relay-2024-01-01.log" not in remaining
    assert f"relay-{datetime.date.today().isoformat()}.log" in remaining


def test_formatter_uses_configured_timezone():
    formatter = LocalTimezoneFormatter("%(asctime)s", timezone_name="UTC")
    record = _record("x")
    record.created = 0

    assert formatter.formatTime(record) == "1970-01-01T00:00:00.000+00:00"


def test_formatter_ignores_unknown_timezone():
    formatter = LocalTimezoneFormatter("%(asctime)s", timezone_name="Mars/Olympus")

    assert formatter.tzinfo is not None
