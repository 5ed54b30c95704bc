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

"""Tests for process configuration."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from chatstream import ChatStreamConfig, configure
from chatstream.dbc import dbc_active


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_defaults() -> None:
    config = ChatStreamConfig()

    assert config.log_level == "INFO"
    assert config.log_format == "text"
    assert config.contracts is False


def test_from_env_reads_chatstream_variables() -> None:
    config = ChatStreamConfig.from_env(
        {
            "CHATSTREAM_LOG_LEVEL": "debug",
            "CHATSTREAM_LOG_FORMAT": "JSON",
            "CHATSTREAM_DBC": "true",
        }
    )

    assert config == ChatStreamConfig(log_level="debug", log_format="json", contracts=True)


def test_from_env_falls_back_to_text_format() -> None:
    config = ChatStreamConfig.from_env({"CHATSTREAM_LOG_FORMAT": "xml"})

    assert config.log_format == "text"
    assert config.log_level == "INFO"


def test_invalid_log_format_is_rejected() -> None:
    with pytest.raises(ValueError, match="log_format"):
        ChatStreamConfig(log_format="yaml")  # type: ignore[arg-type]


def test_configure_applies_logging_and_contracts() -> None:
    root = logging.getLogger()
    root.handlers = []

    resolved = configure(ChatStreamConfig(log_level="WARNING", contracts=False))

    assert resolved.log_level == "WARNING"
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert not dbc_active()


def test_configure_reads_environment_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHATSTREAM_LOG_LEVEL", "ERROR")
    monkeypatch.setenv("CHATSTREAM_DBC", "1")

    resolved = configure(force=True)

    assert resolved.contracts is True
    assert dbc_active()
    assert logging.getLogger().level == logging.ERROR
