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

"""Session event records published by generation transports.

Each event is an immutable record tagged with the ``message_id`` of the
generation it belongs to. The class-level ``type`` attribute is the wire
discriminant.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import ClassVar, override


class SessionEventType(StrEnum):
    """Discriminant values carried in the ``type`` field of wire events."""

    SESSION_START = "SESSION_START"
    MODEL_RESPONSE_WAITING = "MODEL_RESPONSE_WAITING"
    TEXT = "TEXT"
    SESSION_ERROR = "SESSION_ERROR"
    ABORT = "ABORT"
    DONE = "DONE"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """Conventional payload for :class:`SessionError`.

    Transports are free to publish any object as the error; this shape is
    what :meth:`SessionError.from_exception` and the wire decoder produce.
    """

    code: str
    message: str
    details: object = None

    @override
    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(frozen=True, slots=True)
class BaseSessionEvent:
    """Fields shared by every session event."""

    type: ClassVar[SessionEventType]

    message_id: str
    created_at: datetime = field(default_factory=_utcnow, kw_only=True, compare=False)


@dataclass(frozen=True, slots=True)
class SessionStart(BaseSessionEvent):
    """A new generation started for ``message_id``; prior content is discarded."""

    type: ClassVar[SessionEventType] = SessionEventType.SESSION_START


@dataclass(frozen=True, slots=True)
class ModelResponseWaiting(BaseSessionEvent):
    """The request was sent and the model has not produced tokens yet."""

    type: ClassVar[SessionEventType] = SessionEventType.MODEL_RESPONSE_WAITING


@dataclass(frozen=True, slots=True)
class Text(BaseSessionEvent):
    """A chunk of generated text to append to the message."""

    type: ClassVar[SessionEventType] = SessionEventType.TEXT

    content: str


@dataclass(frozen=True, slots=True)
class SessionError(BaseSessionEvent):
    """The generation failed; ``error`` is opaque to the core."""

    type: ClassVar[SessionEventType] = SessionEventType.SESSION_ERROR

    error: object

    @classmethod
    def from_exception(cls, message_id: str, error: BaseException) -> SessionError:
        """Wrap a transport exception in an :class:`ErrorInfo` payload."""

        return cls(
            message_id,
            ErrorInfo(code="STREAM_ERROR", message=str(error), details=error),
        )


@dataclass(frozen=True, slots=True)
class Abort(BaseSessionEvent):
    """The user or transport cancelled the generation."""

    type: ClassVar[SessionEventType] = SessionEventType.ABORT

    reason: str | None = None


@dataclass(frozen=True, slots=True)
class Done(BaseSessionEvent):
    """The generation completed normally."""

    type: ClassVar[SessionEventType] = SessionEventType.DONE

    reason: str | None = None


type SessionEvent = (
    SessionStart | ModelResponseWaiting | Text | SessionError | Abort | Done
)
"""Union of every concrete session event."""

EVENT_CLASSES: dict[SessionEventType, type[BaseSessionEvent]] = {
    cls.type: cls
    for cls in (SessionStart, ModelResponseWaiting, Text, SessionError, Abort, Done)
}


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
]
