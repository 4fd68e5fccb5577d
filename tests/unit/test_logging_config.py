"""Unit tests for log correlation and structured fields."""

import contextvars
import json
import logging

from civictrust.logging_config import (
    DevFormatter,
    JsonFormatter,
    RequestContextFilter,
    bind_actor,
    request_id_var,
)


def _record(**extra):
    record = logging.LogRecord(
        "civictrust.engines.verification.workflow",
        logging.INFO,
        __file__,
        1,
        "Verification approved",
        None,
        None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _filtered(record):
    RequestContextFilter().filter(record)
    return record


class TestRequestContextFilter:

    def test_defaults_without_request(self):
        record = contextvars.copy_context().run(_filtered, _record())
        assert record.request_id == "-"
        assert record.actor_id == "-"

    def test_carries_request_and_actor(self):
        def run():
            request_id_var.set("req-1")
            bind_actor("7f1c")
            return _filtered(_record())

        record = contextvars.copy_context().run(run)
        assert record.request_id == "req-1"
        assert record.actor_id == "7f1c"


class TestJsonFormatter:

    def test_decision_fields_grouped_under_context(self):
        def run():
            request_id_var.set("req-1")
            bind_actor("reviewer-1")
            return _filtered(_record(verification_id="v-1", permission="can_vote"))

        record = contextvars.copy_context().run(run)
        line = json.loads(JsonFormatter().format(record))

        assert line["message"] == "Verification approved"
        assert line["request_id"] == "req-1"
        assert line["actor_id"] == "reviewer-1"
        assert line["context"] == {"verification_id": "v-1", "permission": "can_vote"}

    def test_no_context_without_extra(self):
        record = contextvars.copy_context().run(_filtered, _record())
        line = json.loads(JsonFormatter().format(record))
        assert "context" not in line
        assert "actor_id" not in line


class TestDevFormatter:

    def test_appends_extra_fields(self):
        record = contextvars.copy_context().run(_filtered, _record(verification_id="v-1"))
        line = DevFormatter().format(record)
        assert "user=-" in line
        assert line.endswith("Verification approved verification_id=v-1")
