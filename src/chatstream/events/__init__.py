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

"""Session event types and their wire codec."""

from __future__ import annotations

from ._types import (
    EVENT_CLASSES,
    Abort,
    BaseSessionEvent,
    Done,
    ErrorInfo,
    ModelResponseWaiting,
    SessionError,
    SessionEvent,
    SessionEventType,
    SessionStart,
    Text,
)
from .validation import event_to_wire, parse_event, validate_event

__all__ = [
    "EVENT_CLASSES",
    "Abort",
    "BaseSessionEvent",
    "Done",
    "ErrorInfo",
    "ModelResponseWaiting",
    "SessionError",
    "SessionEvent",
    "SessionEventType",
    "SessionStart",
    "Text",
    "event_to_wire",
    "parse_event",
    "validate_event",
]
