"""Unit tests for structured logging helpers."""

import json
import logging

from herbario.logging_config import (
    REDACTED,
    ConsoleFormatter,
    CorrelationIdFilter,
    JsonFormatter,
    correlation_id_var,
    get_correlation_id,
)


def _record(msg: str = "Plant moderated", **extra) -> logging.LogRecord:
    record = logging.LogRecord("herbario.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_filter_copies_correlation_id_from_context():
    token = correlation_id_var.set("corr-123")
    try:
        record = _record()
        CorrelationIdFilter().filter(record)
    finally:
        correlation_id_var.reset(token)

    assert record.correlation_id == "corr-123"
    assert get_correlation_id() is None


def test_filter_without_context():
    record = _record()
    CorrelationIdFilter().filter(record)

    assert record.correlation_id == "-"


def test_json_formatter_includes_extras():
    record = _record(plant_id="p-1", to_state="accepted", actor_id=None, correlation_id="corr-9")

    line = json.loads(JsonFormatter().format(record))

    assert line["message"] == "Plant moderated"
    assert line["level"] == "INFO"
    assert line["correlation_id"] == "corr-9"
    assert line["plant_id"] == "p-1"
    assert line["to_state"] == "accepted"
    assert "actor_id" not in line


def test_json_formatter_stringifies_unserializable_values():
    record = _record(fields={"name"})

    line = json.loads(JsonFormatter().format(record))

    assert line["fields"] == "{'name'}"


def test_sensitive_extras_are_masked():
    record = _record("Login failed", password="hunter22", token="eyJ...", ip_address="10.0.0.1")
    CorrelationIdFilter().filter(record)

    line = json.loads(JsonFormatter().format(record))

    assert line["password"] == REDACTED
    assert line["token"] == REDACTED
    assert line["ip_address"] == "10.0.0.1"


def test_console_formatter_appends_extras():
    record = _record(plant_id="p-1")
    CorrelationIdFilter().filter(record)

    line = ConsoleFormatter().format(record)

    assert "corr=-" in line
    assert line.endswith("Plant moderated plant_id=p-1")
