import json
import logging

from jobsync.telemetry import StructuredFormatter, setup_logging


def _record(msg, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord("jobsync.test", logging.INFO, __file__, 1, msg, None, exc_info)


def test_dict_messages_are_merged_into_json() -> None:
    line = StructuredFormatter().format(_record({"event": "jobs.reconcile.completed", "jobs": 3}))

    payload = json.loads(line)
    assert payload["event"] == "jobs.reconcile.completed"
    assert payload["jobs"] == 3
    assert payload["level"] == "INFO"
    assert payload["logger"] == "jobsync.test"


def test_plain_messages_use_message_key() -> None:
    payload = json.loads(StructuredFormatter().format(_record("hello")))

    assert payload["message"] == "hello"


def test_setup_logging_installs_a_single_handler() -> None:
    setup_logging("DEBUG", "json")
    logger = setup_logging("WARNING", "text")

    named = [handler for handler in logger.handlers if handler.get_name() == "jobsync.console"]
    assert len(named) == 1
    assert logger.level == logging.WARNING
    assert not isinstance(named[0].formatter, StructuredFormatter)
