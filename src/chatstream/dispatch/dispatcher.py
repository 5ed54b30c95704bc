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

"""Routes session events from transports to the consumer owning them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import cast, override

from ..errors import EventValidationError, UnknownEventTypeError
from ..events import EVENT_CLASSES, BaseSessionEvent, SessionEvent, parse_event
from ..protocols import SessionEventConsumer
from ..runtime.logging import StructuredLogger, get_logger
from ..subscription import Subscription
from .registry import HandleRegistry

logger: StructuredLogger = get_logger(__name__, context={"component": "dispatcher"})

type PublishedEvent = SessionEvent | Mapping[str, object]
"""A decoded event or its raw wire mapping."""


class DispatchStatus(Enum):
    """Outcome of publishing a single event."""

    DELIVERED = auto()
    UNROUTED = auto()
    FAILED = auto()
    INVALID = auto()


def _decode(event: PublishedEvent) -> SessionEvent:
    if not isinstance(event, BaseSessionEvent):
        return parse_event(event)
    if type(event) not in EVENT_CLASSES.values():
        raise UnknownEventTypeError(type(event).__name__)
    message_id: object = event.message_id
    if not isinstance(message_id, str) or not message_id:
        raise EventValidationError("messageId must be a non-empty string")
    return cast(SessionEvent, event)


def _describe_consumer(consumer: object) -> str:
    return f"{type(consumer).__module__}.{type(consumer).__qualname__}"


@dataclass(slots=True, frozen=True)
class DispatchFailure:
    """Error captured while a consumer applied an event or decoding failed."""

    consumer: SessionEventConsumer | None
    error: BaseException

    @override
    def __str__(self) -> str:
        target = "decoder" if self.consumer is None else _describe_consumer(self.consumer)
        return f"{target} -> {self.error!r}"


@dataclass(slots=True, frozen=True)
class DispatchResult:
    """Summary of one ``publish`` call."""

    event: object
    status: DispatchStatus
    message_id: str | None = None
    failure: DispatchFailure | None = None

    @property
    def ok(self) -> bool:
        """``True`` unless decoding or the consumer failed."""

        return self.failure is None

    @property
    def delivered(self) -> bool:
        return self.status is DispatchStatus.DELIVERED

    def raise_if_error(self) -> None:
        """Raise an ``ExceptionGroup`` wrapping the captured failure, if any."""

        if self.failure is None:
            return
        error = self.failure.error
        if not isinstance(error, Exception):  # pragma: no cover - BaseException escapes publish
            raise error
        raise ExceptionGroup(f"Errors while dispatching: {self.failure}", (error,))


class SessionEventDispatcher:
    """Synchronous, fault-isolating router for session events.

    ``publish`` runs on the caller's thread and returns once the consumer has
    applied the event, so transport delivery order is application order for
    each ``message_id``. Nothing is queued: events for identifiers without a
    consumer are dropped, including ones that arrive before a late mount.

    Consumers must not call back into the dispatcher from ``apply``.
    """

    __slots__ = ("_registry",)

    def __init__(self, registry: HandleRegistry | None = None) -> None:
        super().__init__()
        self._registry = registry if registry is not None else HandleRegistry()

    @property
    def registry(self) -> HandleRegistry:
        return self._registry

    def register(self, message_id: str, consumer: SessionEventConsumer) -> Subscription:
        """Bind ``consumer`` to ``message_id``; the last registration wins."""

        return self._registry.register(message_id, consumer)

    def publish(self, event: PublishedEvent) -> DispatchResult:
        """Deliver ``event`` to the consumer registered for its ``message_id``.

        Never raises for malformed input, missing consumers or consumer
        failures; inspect the returned :class:`DispatchResult` instead.
        """

        try:
            decoded = _decode(event)
        except EventValidationError as error:
            logger.warning(
                "Dropping malformed session event.",
                event="dispatch_invalid_event",
                context={"reason": str(error), "payload_type": type(event).__name__},
            )
            return DispatchResult(
                event=event,
                status=DispatchStatus.INVALID,
                failure=DispatchFailure(consumer=None, error=error),
            )

        message_id = decoded.message_id
        consumer = self._registry.lookup(message_id)
        if consumer is None:
            logger.debug(
                "No consumer registered for event.",
                event="dispatch_unrouted",
                context={"message_id": message_id, "event_type": decoded.type.value},
            )
            return DispatchResult(
                event=decoded, status=DispatchStatus.UNROUTED, message_id=message_id
            )

        try:
            consumer.apply(decoded)
        except Exception as error:
            logger.exception(
                "Consumer failed to apply session event.",
                event="dispatch_consumer_failed",
                context={
                    "message_id": message_id,
                    "event_type": decoded.type.value,
                    "consumer": _describe_consumer(consumer),
                },
            )
            return DispatchResult(
                event=decoded,
                status=DispatchStatus.FAILED,
                message_id=message_id,
                failure=DispatchFailure(consumer=consumer, error=error),
            )

        return DispatchResult(
            event=decoded, status=DispatchStatus.DELIVERED, message_id=message_id
        )

    def publish_all(self, events: Iterable[PublishedEvent]) -> tuple[DispatchResult, ...]:
        """Publish ``events`` one by one in iteration order."""

        return tuple(self.publish(event) for event in events)


__all__ = [
    "DispatchFailure",
    "DispatchResult",
    "DispatchStatus",
    "PublishedEvent",
    "SessionEventDispatcher",
]
