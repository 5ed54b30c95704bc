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

"""Stateful consumer owning the generation session of one message."""

from __future__ import annotations

from collections.abc import Callable
from threading import RLock
from typing import override
from uuid import uuid4

from ..errors import MessageIdMismatchError
from ..events import SessionEvent
from ..runtime.logging import StructuredLogger, get_logger
from ..subscription import Subscription
from .state import GenerationSession, GenerationState
from .transitions import apply_event

type SessionObserver = Callable[[GenerationSession, GenerationSession], None]
"""Callback receiving ``(old, new)`` after the session changed."""

logger: StructuredLogger = get_logger(__name__, context={"component": "generation"})


class GenerationConsumer:
    """Applies session events for a single ``message_id``.

    The consumer is the view-side owner of a :class:`GenerationSession`: it
    keeps the latest snapshot, serialises ``apply`` calls and tells observers
    (typically the widget rendering the message) when the snapshot changes.

    ``initial_content`` is the persisted text of the message, shown until a
    generation produces content of its own.
    """

    __slots__ = (
        "__weakref__",
        "_apply_lock",
        "_observer_lock",
        "_observers",
        "_session",
        "initial_content",
    )

    def __init__(
        self,
        message_id: str,
        *,
        initial_content: str = "",
        session: GenerationSession | None = None,
    ) -> None:
        super().__init__()
        if session is not None and session.message_id != message_id:
            raise MessageIdMismatchError(message_id, session.message_id)
        self._session = session or GenerationSession(message_id)
        self.initial_content = initial_content
        self._apply_lock = RLock()
        self._observer_lock = RLock()
        self._observers: dict[object, SessionObserver] = {}

    @property
    def message_id(self) -> str:
        return self._session.message_id

    @property
    def session(self) -> GenerationSession:
        return self._session

    @property
    def state(self) -> GenerationState:
        return self._session.state

    @property
    def content(self) -> str:
        return self._session.content

    @property
    def error(self) -> object:
        return self._session.error

    @property
    def is_active(self) -> bool:
        return self._session.is_active

    @property
    def display_content(self) -> str:
        """Generated content, or the persisted content before any generation."""

        return self._session.content or self.initial_content

    @property
    def can_regenerate(self) -> bool:
        """Regeneration is offered only while no generation is running."""

        return not self._session.is_active

    def apply(self, event: SessionEvent) -> GenerationSession:
        """Apply ``event`` and return the resulting session.

        Raises:
            MessageIdMismatchError: ``event`` belongs to another message.
        """

        if event.message_id != self.message_id:
            raise MessageIdMismatchError(self.message_id, event.message_id)

        # Observers run under the lock so notifications follow transition order.
        with self._apply_lock:
            previous = self._session
            current = apply_event(previous, event)
            self._session = current

            if current is previous:
                logger.debug(
                    "Event ignored in current state.",
                    event="generation_event_ignored",
                    context={
                        "message_id": self.message_id,
                        "event_type": event.type.value,
                        "state": previous.state.name,
                    },
                )
                return current

            logger.debug(
                "Generation state changed.",
                event="generation_transition",
                context={
                    "message_id": self.message_id,
                    "event_type": event.type.value,
                    "from_state": previous.state.name,
                    "to_state": current.state.name,
                },
            )
            self._notify(previous, current)
        return current

    def observe(self, observer: SessionObserver) -> Subscription:
        """Call ``observer(old, new)`` after every session change.

        Observers run on the applying thread while the consumer is locked, so
        they see changes in transition order and should return promptly.
        """

        key = uuid4()

        def unregister() -> bool:
            with self._observer_lock:
                return self._observers.pop(key, None) is not None

        with self._observer_lock:
            self._observers[key] = observer
        return Subscription(unregister_fn=unregister, subscription_id=key)

    def _notify(self, previous: GenerationSession, current: GenerationSession) -> None:
        with self._observer_lock:
            observers = tuple(self._observers.values())
        for observer in observers:
            try:
                observer(previous, current)
            except Exception:
                logger.exception(
                    "Session observer failed.",
                    event="generation_observer_failed",
                    context={
                        "message_id": self.message_id,
                        "observer": getattr(observer, "__qualname__", repr(observer)),
                    },
                )

    @override
    def __repr__(self) -> str:
        return (
            f"GenerationConsumer(message_id={self.message_id!r}, "
            f"state={self.state.name})"
        )


__all__ = ["GenerationConsumer", "SessionObserver"]
