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

"""Routing of streamed generation events to the chat messages that render them.

Typical wiring::

    dispatcher = SessionEventDispatcher()
    binder = MessageBinder(dispatcher)

    with binder.mount("m1") as view:
        dispatcher.publish(SessionStart("m1"))
        dispatcher.publish({"type": "TEXT", "messageId": "m1", "content": "Hi"})
        assert view.consumer.content == "Hi"
"""

from __future__ import annotations

from .config import ChatStreamConfig, configure
from .dispatch import (
    DispatchFailure,
    DispatchResult,
    DispatchStatus,
    HandleRegistry,
    MessageBinder,
    MountedMessage,
    SessionEventDispatcher,
)
from .errors import (
    ChatStreamError,
    EventValidationError,
    MessageIdMismatchError,
    UnknownEventTypeError,
)
from .events import (
    Abort,
    Done,
    ErrorInfo,
    ModelResponseWaiting,
    SessionError,
    SessionEvent,
    SessionEventType,
    SessionStart,
    Text,
    event_to_wire,
    parse_event,
    validate_event,
)
from .generation import (
    GenerationConsumer,
    GenerationSession,
    GenerationState,
    apply_event,
)
from .protocols import SessionEventConsumer
from .subscription import Subscription

__all__ = [
    "Abort",
    "ChatStreamConfig",
    "ChatStreamError",
    "DispatchFailure",
    "DispatchResult",
    "DispatchStatus",
    "Done",
    "ErrorInfo",
    "EventValidationError",
    "GenerationConsumer",
    "GenerationSession",
    "GenerationState",
    "HandleRegistry",
    "MessageBinder",
    "MessageIdMismatchError",
    "ModelResponseWaiting",
    "MountedMessage",
    "SessionError",
    "SessionEvent",
    "SessionEventConsumer",
    "SessionEventDispatcher",
    "SessionEventType",
    "SessionStart",
    "Subscription",
    "Text",
    "UnknownEventTypeError",
    "apply_event",
    "configure",
    "event_to_wire",
    "parse_event",
    "validate_event",
]
