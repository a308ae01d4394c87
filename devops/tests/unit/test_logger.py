"""Tests for pipeline logging."""

import json

import structlog

from storefront_ci.core.logger import StageLogger, bind_run_context, get_logger, setup_logging


class TestLogging:
    def teardown_method(self):
        structlog.contextvars.clear_contextvars()
        setup_logging()

    def test_machine_output_keeps_stdout_clean(self, capsys):
        setup_logging(machine_output=True)

        StageLogger("Deploy").warning("No deploy log found")
        get_logger("Actions").info("event parsed")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "No deploy log found" in captured.err
        assert "event parsed" in captured.err

    def test_events_carry_run_context(self, capsys):
        setup_logging()
        bind_run_context(run_id="prod-20260101-000000-abc123")

        get_logger("Actions").info("event parsed")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "event parsed"
        assert event["run_id"] == "prod-20260101-000000-abc123"
        assert event["level"] == "info"
