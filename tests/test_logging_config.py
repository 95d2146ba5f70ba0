"""Log formatter tests: context keys passed through ``extra=`` reach both formats."""

import json
import logging

from daily_reports.middleware.logging_config import JSONFormatter, ReadableFormatter


def _record(**extra):
    record = logging.LogRecord("daily_reports.test", logging.INFO, __file__, 1, "Report %s approved", (7,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_carries_context():
    entry = json.loads(JSONFormatter().format(_record(report_id=7, actor_id=2, remote_addr="10.0.0.1")))
    assert entry["message"] == "Report 7 approved"
    assert entry["report_id"] == 7
    assert entry["actor_id"] == 2
    assert "remote_addr" not in entry


def test_readable_appends_context():
    line = ReadableFormatter().format(_record(report_id=7, event_type="approve"))
    assert line.endswith("daily_reports.test: Report 7 approved  report_id=7 event_type=approve")


def test_readable_without_context():
    assert ReadableFormatter().format(_record()).endswith("Report 7 approved")
