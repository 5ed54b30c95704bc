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

"""Process configuration for applications embedding :mod:`chatstream`."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

from .dbc import DBC_ENV, coerce_flag, disable_dbc, enable_dbc
from .runtime.logging import LOG_FORMAT_ENV, LOG_LEVEL_ENV, configure_logging

type LogFormat = Literal["text", "json"]


@dataclass(frozen=True, slots=True)
class ChatStreamConfig:
    """Configuration for logging and contract enforcement.

    Attributes:
        log_level: Root log level name or number. Defaults to ``INFO``.
        log_format: ``"text"`` or ``"json"`` records on stderr.
        contracts: Evaluate ``@require``/``@ensure``/``@invariant``/``@pure``
            contracts. Intended for tests and debugging sessions.
    """

    log_level: str | int = "INFO"
    log_format: LogFormat = "text"
    contracts: bool = False

    def __post_init__(self) -> None:
        if self.log_format not in {"text", "json"}:
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ChatStreamConfig:
        """Build a config from ``CHATSTREAM_*`` environment variables."""

        env = os.environ if env is None else env
        log_format = env.get(LOG_FORMAT_ENV, "text").strip().lower()
        return cls(
            log_level=env.get(LOG_LEVEL_ENV, "INFO").strip() or "INFO",
            log_format="json" if log_format == "json" else "text",
            contracts=coerce_flag(env.get(DBC_ENV)),
        )


def configure(config: ChatStreamConfig | None = None, *, force: bool = False) -> ChatStreamConfig:
    """Apply ``config`` (or the environment) to logging and contracts."""

    resolved = config if config is not None else ChatStreamConfig.from_env()
    configure_logging(
        level=resolved.log_level,
        json_mode=resolved.log_format == "json",
        force=force,
    )
    if resolved.contracts:
        enable_dbc()
    else:
        disable_dbc()
    return resolved


__all__ = ["ChatStreamConfig", "LogFormat", "configure"]
