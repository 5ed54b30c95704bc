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

"""Mount-scoped binding of message views to the dispatcher.

A message list mounts one view per AI message. While mounted, the view's
:class:`GenerationConsumer` is registered for the message identifier; on
unmount the binding is removed. Mounting an identifier again while another
mount still holds its consumer (a virtualised list re-rendering the message
into a new element) reuses that consumer, so accumulated content survives
the re-bind. Once the last mount is gone the consumer is released.
"""

from __future__ import annotations

import weakref
from threading import RLock
from types import TracebackType
from typing import Self, override

from ..generation import GenerationConsumer
from ..subscription import Subscription
from .dispatcher import SessionEventDispatcher


class MountedMessage:
    """A mounted view of one message; keeps its consumer alive."""

    __slots__ = ("_subscription", "consumer")

    def __init__(self, consumer: GenerationConsumer, subscription: Subscription) -> None:
        super().__init__()
        self.consumer = consumer
        self._subscription = subscription

    @property
    def message_id(self) -> str:
        return self.consumer.message_id

    @property
    def mounted(self) -> bool:
        return self._subscription.active

    def unmount(self) -> bool:
        """Detach from the dispatcher. Returns ``True`` if the binding was live."""

        return self._subscription.unregister()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.unmount()

    @override
    def __repr__(self) -> str:
        return f"MountedMessage(message_id={self.message_id!r}, mounted={self.mounted})"


class MessageBinder:
    """Creates and re-uses consumers for mounted message views."""

    __slots__ = ("_consumers", "_dispatcher", "_lock")

    def __init__(self, dispatcher: SessionEventDispatcher) -> None:
        super().__init__()
        self._dispatcher = dispatcher
        self._consumers: weakref.WeakValueDictionary[str, GenerationConsumer] = (
            weakref.WeakValueDictionary()
        )
        self._lock = RLock()

    def mount(self, message_id: str, *, initial_content: str = "") -> MountedMessage:
        """Mount a view for ``message_id`` and bind its consumer.

        ``initial_content`` only applies when a new consumer is created.
        """

        with self._lock:
            consumer = self._consumers.get(message_id)
            if consumer is None:
                consumer = GenerationConsumer(message_id, initial_content=initial_content)
                self._consumers[message_id] = consumer
            subscription = self._dispatcher.register(message_id, consumer)
        return MountedMessage(consumer, subscription)

    def consumer_for(self, message_id: str) -> GenerationConsumer | None:
        """Return the consumer kept alive by a mount of ``message_id``."""

        with self._lock:
            return self._consumers.get(message_id)


__all__ = ["MessageBinder", "MountedMessage"]
