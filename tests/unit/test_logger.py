"""
tests/unit/test_logger.py — structlog setup

Covers:
  - setup_logging creates the log directory and writes JSON lines to the file
  - bound initial values and context vars appear on every line
  - every line carries the emitting thread name unless the call sets one
  - setup_logging_from_settings honours the logging section
  - callback failures reported by the default sink land in the log file
"""

from __future__ import annotations

import json
import logging
import threading
import time

import pytest
import structlog

from timedevents.config.settings import Settings
from timedevents.observability.logger import (
    LOG_FILE_NAME,
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    setup_logging_from_settings,
)
from timedevents.scheduler import TimedEventScheduler


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    clear_context()
    for handler in logging.getLogger().handlers:
        handler.flush()
        handler.close()
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


def _read_lines(log_dir) -> list[dict]:
    for handler in logging.getLogger().handlers:
        handler.flush()
    text = (log_dir / LOG_FILE_NAME).read_text(encoding="utf-8")
    return [json.loads(line) for line in text.splitlines() if line.strip()]


class TestSetupLogging:
    def test_creates_dir_and_writes_json(self, tmp_path):
        log_dir = tmp_path / "logs"
        setup_logging(level="DEBUG", log_dir=log_dir, console_output=False)
        get_logger("timedevents.test").info("test.event", answer=42)
        lines = _read_lines(log_dir)
        assert lines[-1]["event"] == "test.event"
        assert lines[-1]["answer"] == 42
        assert lines[-1]["level"] == "info"
        assert lines[-1]["logger"] == "timedevents.test"
        assert "timestamp" in lines[-1]

    def test_level_filters(self, tmp_path):
        setup_logging(level="WARNING", log_dir=tmp_path, console_output=False)
        log = get_logger("timedevents.test")
        log.info("quiet.event")
        log.warning("loud.event")
        events = [line["event"] for line in _read_lines(tmp_path)]
        assert "quiet.event" not in events
        assert "loud.event" in events

    def test_bound_values_and_context(self, tmp_path):
        setup_logging(log_dir=tmp_path, console_output=False)
        bind_context(scheduler="ui")
        get_logger("timedevents.test", component="store").info("ctx.event")
        line = _read_lines(tmp_path)[-1]
        assert line["component"] == "store"
        assert line["scheduler"] == "ui"

    def test_thread_name_stamped(self, tmp_path):
        setup_logging(log_dir=tmp_path, console_output=False)
        log = get_logger("timedevents.test")
        worker = threading.Thread(target=lambda: log.info("worker.event"), name="timer-worker")
        worker.start()
        worker.join()
        log.info("explicit.event", thread="given")
        by_event = {line["event"]: line for line in _read_lines(tmp_path)}
        assert by_event["worker.event"]["thread"] == "timer-worker"
        assert by_event["explicit.event"]["thread"] == "given"

    def test_dispatcher_lines_name_its_thread(self, tmp_path):
        setup_logging(level="DEBUG", log_dir=tmp_path, console_output=False)
        with TimedEventScheduler(thread_name="log-timers") as s:
            s.schedule(lambda: None)
            deadline = time.monotonic() + 2.0
            while s.stats.fired == 0 and time.monotonic() < deadline:
                time.sleep(0.005)
        draining = [line for line in _read_lines(tmp_path)
                    if line["event"] == "dispatcher.draining"]
        assert draining and draining[0]["thread"] == "log-timers"

    def test_from_settings(self, tmp_path):
        settings = Settings(logging={
            "level": "ERROR", "log_dir": str(tmp_path / "s"), "console_output": False,
        })
        setup_logging_from_settings(settings)
        assert (tmp_path / "s").is_dir()
        assert logging.getLogger().level == logging.ERROR


class TestDefaultErrorSink:
    def test_callback_failure_logged(self, tmp_path):
        setup_logging(log_dir=tmp_path, console_output=False)
        with TimedEventScheduler() as s:
            s.schedule(lambda: 1 / 0)
            deadline = time.monotonic() + 2.0
            while s.stats.failed == 0 and time.monotonic() < deadline:
                time.sleep(0.005)
        failures = [line for line in _read_lines(tmp_path)
                    if line["event"] == "scheduler.callback.failed"]
        assert len(failures) == 1
        assert failures[0]["error_type"] == "ZeroDivisionError"
        assert "ZeroDivisionError" in failures[0]["exception"]
