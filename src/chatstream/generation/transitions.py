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

"""Pure transition function of the generation state machine.

=============================  ======================  =========
From                           Event                   To
=============================  ======================  =========
IDLE, ERRORED, ABORTED, DONE   SessionStart            ACTIVE
ACTIVE                         ModelResponseWaiting    WAITING
ACTIVE, WAITING, STREAMING     Text                    STREAMING
ACTIVE, WAITING, STREAMING     SessionError            ERRORED
ACTIVE, WAITING, STREAMING     Abort                   ABORTED
ACTIVE, WAITING, STREAMING     Done                    DONE
=============================  ======================  =========

Every other pair leaves the session untouched and returns the same object.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..dbc import pure
from ..events import (
    Abort,
    Done,
    ModelResponseWaiting,
    SessionError,
    SessionEvent,
    SessionStart,
    Text,
)
from .state import ACTIVE_STATES, GenerationSession, GenerationState

_RESTARTABLE_STATES = frozenset(
    {
        GenerationState.IDLE,
        GenerationState.ERRORED,
        GenerationState.ABORTED,
        GenerationState.DONE,
    }
)


@pure
def apply_event(session: GenerationSession, event: SessionEvent) -> GenerationSession:
    """Return the session that results from applying ``event``.

    Events for another ``message_id`` and events that are not valid in the
    current state are ignored. Text chunks are concatenated in call order.
    """

    if event.message_id != session.message_id:
        return session

    state = session.state
    match event:
        case SessionStart():
            if state in _RESTARTABLE_STATES:
                return session.evolve(GenerationState.ACTIVE, content="")
        case ModelResponseWaiting():
            if state is GenerationState.ACTIVE:
                return session.evolve(GenerationState.WAITING)
        case Text(content=chunk):
            if state in ACTIVE_STATES:
                return session.evolve(
                    GenerationState.STREAMING, content=session.content + chunk
                )
        case SessionError(error=error):
            if state in ACTIVE_STATES:
                return session.evolve(GenerationState.ERRORED, error=error)
        case Abort():
            if state in ACTIVE_STATES:
                return session.evolve(GenerationState.ABORTED)
        case Done():
            if state in ACTIVE_STATES:
                return session.evolve(GenerationState.DONE)
        case _:
            pass
    return session


def replay(session: GenerationSession, events: Iterable[SessionEvent]) -> GenerationSession:
    """Fold ``events`` over ``session`` in order."""

    for event in events:
        session = apply_event(session, event)
    return session


__all__ = ["apply_event", "replay"]
