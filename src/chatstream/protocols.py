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

"""Protocols implemented by collaborators of the dispatcher.

This module has no dependencies on other chatstream modules besides the
event types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .events import SessionEvent


@runtime_checkable
class SessionEventConsumer(Protocol):
    """Object that applies session events for the message it renders.

    Consumers are registered per ``message_id`` with the dispatcher, which
    holds them weakly: whoever mounts the consumer keeps it alive.
    """

    def apply(self, event: SessionEvent) -> object:
        """Apply ``event`` to the consumer's own state."""
        ...


__all__ = ["SessionEventConsumer"]
