# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from chatstream.runtime.logging import (
    StructuredLogger,
    _coerce_level,
    _JsonFormatter,
    _TextFormatter,
    configure_logging,
    get_logger,
)


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@contextmanager
def _capture(logger: logging.Logger) -> Iterator[list[logging.LogRecord]]:
    handler = _CaptureHandler()
    logger.addHandler(handler)
    try:
        yield handler.records
    finally:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    try:
        yield
    finally:
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)


def test_structured_logger_emits_event_and_context() -> None:
    logger = get_logger("tests.logging", context={"component": "dispatcher"})
    logger.logger.setLevel(logging.INFO)

    with _capture(logger.logger) as records:
        logger.info("routed", event="dispatch_delivered", context={"message_id": "m1"})

    assert len(records) == 1
    record = records[0]
    assert record.getMessage() == "routed"
    assert record.event == "dispatch_delivered"  # type: ignore[attr-defined]
    assert record.context == {  # type: ignore[attr-defined]
        "component": "dispatcher",
        "message_id": "m1",
    }


def test_bind_merges_context_without_mutating_original() -> None:
    base = get_logger("tests.logging.bind", context={"component": "registry"})
    bound = base.bind(message_id="m1")
    bound.logger.setLevel(logging.INFO)

    with _capture(bound.logger) as records:
        bound.info("bound", event="bound_event")
        base.info("base", event="base_event")

    assert isinstance(bound, StructuredLogger)
    assert records[0].context == {"component": "registry", "message_id": "m1"}  # type: ignore[attr-defined]
    assert records[1].context == {"component": "registry"}  # type: ignore[attr-defined]


def test_extra_fields_fold_into_context() -> None:
    logger = get_logger("tests.logging.extra")
    logger.logger.setLevel(logging.INFO)

    with _capture(logger.logger) as records:
        logger.info("extra", extra={"event": "from_extra", "attempt": 2})

    assert records[0].event == "from_extra"  # type: ignore[attr-defined]
    assert records[0].context == {"attempt": 2}  # type: ignore[attr-defined]


def test_missing_event_is_rejected() -> None:
    logger = get_logger("tests.logging.missing")
    logger.logger.setLevel(logging.INFO)

    with pytest.raises(TypeError, match="event"):
        logger.info("no event")


def test_non_mapping_context_is_rejected() -> None:
    logger = get_logger("tests.logging.context")
    logger.logger.setLevel(logging.INFO)

    with pytest.raises(TypeError, match="context must be a mapping"):
        logger.info("bad", event="bad_context", context=["not", "a", "mapping"])


def test_configure_logging_installs_json_handler() -> None:
    root = logging.getLogger()
    root.handlers = []

    configure_logging(level="DEBUG", json_mode=True, env={})

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, _JsonFormatter)


def test_configure_logging_reads_environment() -> None:
    root = logging.getLogger()
    root.handlers = []

    configure_logging(
        env={"CHATSTREAM_LOG_LEVEL": "warning", "CHATSTREAM_LOG_FORMAT": "text"}
    )

    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, _TextFormatter)


def test_configure_logging_respects_existing_handlers() -> None:
    root = logging.getLogger()
    existing = logging.NullHandler()
    root.handlers = [existing]

    configure_logging(level=logging.ERROR, env={})

    assert root.handlers == [existing]
    assert root.level == logging.ERROR


def test_json_formatter_renders_structured_payload() -> None:
    record = logging.LogRecord(
        name="chatstream.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="dropped %s",
        args=("event",),
        exc_info=None,
    )
    record.event = "dispatch_invalid_event"
    record.context = {"reason": "bad", "payload": object()}

    payload = json.loads(_JsonFormatter().format(record))

    assert payload["level"] == "WARNING"
    assert payload["message"] == "dropped event"
    assert payload["event"] == "dispatch_invalid_event"
    assert payload["context"]["reason"] == "bad"
    assert payload["context"]["payload"].startswith("<object object")


def test_text_formatter_tolerates_plain_records() -> None:
    formatter = _TextFormatter("%(event)s %(message)s %(context)s")
    record = logging.LogRecord("plain", logging.INFO, __file__, 1, "hello", (), None)

    assert formatter.format(record) == "- hello {}"


def test_coerce_level() -> None:
    assert _coerce_level("info") == logging.INFO
    assert _coerce_level(logging.DEBUG) == logging.DEBUG
    with pytest.raises(TypeError, match="Unknown log level"):
        _coerce_level("loud")
