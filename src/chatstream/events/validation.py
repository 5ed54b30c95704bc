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

"""Decoding and encoding of session events in their wire shape.

Wire events are JSON-like mappings::

    {"type": "TEXT", "messageId": "m1", "content": "Hello", "timestamp": 1700000000000}

``type`` is matched case-insensitively so emitters using lowercase
discriminants (``"session_start"``) decode to the same events.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, cast

from ..dbc import ensure
from ..errors import EventValidationError, UnknownEventTypeError
from ..types import JSONObject
from ._types import (
    EVENT_CLASSES,
    Abort,
    BaseSessionEvent,
    Done,
    ErrorInfo,
    SessionError,
    SessionEvent,
    SessionEventType,
    Text,
)

_TYPE_KEY = "type"
_MESSAGE_ID_KEY = "messageId"
_TIMESTAMP_KEY = "timestamp"


def _resolve_type(raw: object) -> SessionEventType:
    if not isinstance(raw, str):
        raise UnknownEventTypeError(raw)
    try:
        return SessionEventType(raw.upper())
    except ValueError:
        raise UnknownEventTypeError(raw) from None


def _require_message_id(payload: Mapping[str, object]) -> str:
    message_id = payload.get(_MESSAGE_ID_KEY)
    if not isinstance(message_id, str) or not message_id:
        raise EventValidationError("messageId must be a non-empty string")
    return message_id


def _decode_timestamp(raw: object) -> datetime | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise EventValidationError("timestamp must be epoch milliseconds")
    try:
        return datetime.fromtimestamp(raw / 1000, tz=UTC)
    except (OverflowError, OSError, ValueError) as error:
        raise EventValidationError(f"timestamp out of range: {raw!r}") from error


def _decode_error(raw: object) -> object:
    if isinstance(raw, Mapping):
        error_mapping = cast(Mapping[str, object], raw)
        code = error_mapping.get("code")
        message = error_mapping.get("message")
        if isinstance(code, str) and isinstance(message, str):
            return ErrorInfo(code=code, message=message, details=error_mapping.get("details"))
    return raw


def _decode_reason(payload: Mapping[str, object]) -> str | None:
    reason = payload.get("reason")
    if reason is not None and not isinstance(reason, str):
        raise EventValidationError("reason must be a string when provided")
    return reason


def _is_session_event(*args: object, result: object, **kwargs: object) -> bool:
    del args, kwargs
    return isinstance(result, BaseSessionEvent)


@ensure(_is_session_event)
def parse_event(payload: Mapping[str, object]) -> SessionEvent:
    """Decode a wire mapping into a :data:`SessionEvent`.

    Raises:
        UnknownEventTypeError: ``type`` is missing or not a known discriminant.
        EventValidationError: required fields are missing or mistyped.
    """

    if not isinstance(payload, Mapping):
        raise EventValidationError(
            f"session events must be mappings, got {type(payload).__name__}"
        )

    event_type = _resolve_type(payload.get(_TYPE_KEY))
    message_id = _require_message_id(payload)
    created_at = _decode_timestamp(payload.get(_TIMESTAMP_KEY))

    fields: dict[str, Any] = {}
    match event_type:
        case SessionEventType.TEXT:
            content = payload.get("content")
            if not isinstance(content, str):
                raise EventValidationError("TEXT events require string content")
            fields["content"] = content
        case SessionEventType.SESSION_ERROR:
            fields["error"] = _decode_error(payload.get("error"))
        case SessionEventType.ABORT | SessionEventType.DONE:
            fields["reason"] = _decode_reason(payload)
        case _:
            pass

    if created_at is not None:
        fields["created_at"] = created_at
    return cast(SessionEvent, EVENT_CLASSES[event_type](message_id, **fields))


def validate_event(payload: Mapping[str, object]) -> bool:
    """Return ``True`` when ``payload`` decodes into a session event."""

    try:
        parse_event(payload)
    except EventValidationError:
        return False
    return True


def _encode_error(error: object) -> object:
    if isinstance(error, ErrorInfo):
        encoded: dict[str, object] = {"code": error.code, "message": error.message}
        if error.details is not None:
            encoded["details"] = repr(error.details)
        return encoded
    return error


def event_to_wire(event: SessionEvent) -> JSONObject:
    """Encode ``event`` into its wire mapping.

    Opaque ``SessionError.error`` values other than :class:`ErrorInfo` are
    passed through unchanged; ``ErrorInfo.details`` is rendered with
    ``repr`` since it commonly holds an exception.
    """

    payload: dict[str, object] = {
        _TYPE_KEY: event.type.value,
        _MESSAGE_ID_KEY: event.message_id,
        _TIMESTAMP_KEY: int(event.created_at.timestamp() * 1000),
    }
    match event:
        case Text(content=content):
            payload["content"] = content
        case SessionError(error=error):
            payload["error"] = _encode_error(error)
        case Abort(reason=reason) | Done(reason=reason):
            if reason is not None:
                payload["reason"] = reason
        case _:
            pass
    return cast(JSONObject, payload)


__all__ = ["event_to_wire", "parse_event", "validate_event"]
