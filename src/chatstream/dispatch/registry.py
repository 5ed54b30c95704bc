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

"""Process-wide mapping from message identifiers to mounted consumers."""

from __future__ import annotations

import weakref
from collections.abc import Iterator
from dataclasses import dataclass
from threading import RLock
from uuid import UUID, uuid4

from ..dbc import require
from ..protocols import SessionEventConsumer
from ..runtime.logging import StructuredLogger, get_logger
from ..subscription import Subscription

logger: StructuredLogger = get_logger(__name__, context={"component": "registry"})


def _implements_consumer(
    registry: object, message_id: object, consumer: object
) -> tuple[bool, str]:
    del registry, message_id
    return (
        isinstance(consumer, SessionEventConsumer),
        f"{type(consumer).__name__} does not implement apply(event)",
    )


@dataclass(slots=True, frozen=True)
class RegistryEntry:
    """Weak binding of a consumer to a message identifier."""

    reference: weakref.ReferenceType[SessionEventConsumer]
    registration_id: UUID

    def resolve(self) -> SessionEventConsumer | None:
        return self.reference()


class HandleRegistry:
    """Thread-safe ``message_id -> consumer`` registry.

    - At most one consumer per identifier; registering again replaces the
      previous binding without notifying it.
    - Consumers are held weakly. A collected consumer behaves as if it had
      unregistered.
    - A :class:`Subscription` only removes the binding it created, so a stale
      handle from an earlier mount cannot evict a newer one.
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        super().__init__()
        self._entries: dict[str, RegistryEntry] = {}
        self._lock = RLock()

    @require(_implements_consumer)
    def register(self, message_id: str, consumer: SessionEventConsumer) -> Subscription:
        """Bind ``consumer`` to ``message_id`` and return its subscription."""

        if not message_id:
            raise ValueError("message_id must be a non-empty string")

        registration_id = uuid4()

        def on_collected(_: weakref.ReferenceType[SessionEventConsumer]) -> None:
            self._discard(message_id, registration_id, reason="collected")

        try:
            reference = weakref.ref(consumer, on_collected)
        except TypeError as error:
            raise TypeError(
                f"{type(consumer).__name__} must support weak references to be registered"
            ) from error

        entry = RegistryEntry(reference=reference, registration_id=registration_id)
        with self._lock:
            previous = self._entries.get(message_id)
            self._entries[message_id] = entry

        if previous is not None:
            logger.debug(
                "Consumer binding replaced.",
                event="registry_replaced",
                context={"message_id": message_id},
            )

        return Subscription(
            unregister_fn=lambda: self._discard(
                message_id, registration_id, reason="unregistered"
            ),
            subscription_id=registration_id,
        )

    def lookup(self, message_id: str) -> SessionEventConsumer | None:
        """Return the live consumer bound to ``message_id``, if any."""

        with self._lock:
            entry = self._entries.get(message_id)
        if entry is None:
            return None
        consumer = entry.resolve()
        if consumer is None:
            self._discard(message_id, entry.registration_id, reason="collected")
        return consumer

    def message_ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _discard(self, message_id: str, registration_id: UUID, *, reason: str) -> bool:
        with self._lock:
            entry = self._entries.get(message_id)
            if entry is None or entry.registration_id != registration_id:
                return False
            del self._entries[message_id]
        logger.debug(
            "Consumer binding removed.",
            event="registry_unregistered",
            context={"message_id": message_id, "reason": reason},
        )
        return True

    def __contains__(self, message_id: object) -> bool:
        with self._lock:
            return message_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.message_ids())


__all__ = ["HandleRegistry", "RegistryEntry"]
