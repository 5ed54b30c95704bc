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

"""Exception hierarchy for :mod:`chatstream`."""

from __future__ import annotations


class ChatStreamError(Exception):
    """Base class for all chatstream exceptions.

    Catch this to handle any library-specific failure while letting standard
    Python exceptions propagate normally. Subclasses also inherit from a
    builtin exception type where one fits, so ``except ValueError`` keeps
    working for callers that do not know about this hierarchy.
    """


class EventValidationError(ChatStreamError, ValueError):
    """Raised when a wire mapping cannot be decoded into a session event.

    Common causes:

    - ``messageId`` missing, empty or not a string
    - ``TEXT`` events without a string ``content``
    - ``timestamp`` that is not a number of epoch milliseconds

    Example::

        try:
            event = parse_event(payload)
        except EventValidationError as error:
            logger.warning("Dropping payload.", event="bad_payload",
                           context={"reason": str(error)})
    """


class UnknownEventTypeError(EventValidationError):
    """Raised when the ``type`` discriminant is not a known session event."""

    def __init__(self, event_type: object) -> None:
        super().__init__(f"Unknown session event type: {event_type!r}")
        self.event_type = event_type


class MessageIdMismatchError(ChatStreamError, ValueError):
    """Raised when a consumer receives an event for another message.

    The dispatcher only routes events to the consumer registered for their
    ``message_id``; seeing this error means a consumer was registered under
    the wrong identifier or invoked directly with a foreign event.
    """

    def __init__(self, expected: str, received: str) -> None:
        super().__init__(
            f"Consumer for message {expected!r} received an event for {received!r}"
        )
        self.expected = expected
        self.received = received


__all__ = [
    "ChatStreamError",
    "EventValidationError",
    "MessageIdMismatchError",
    "UnknownEventTypeError",
]
