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

"""Generation session state for a single AI message."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto

from ..dbc import invariant


class GenerationState(Enum):
    """Lifecycle of one generation."""

    IDLE = auto()
    ACTIVE = auto()
    WAITING = auto()
    STREAMING = auto()
    ERRORED = auto()
    ABORTED = auto()
    DONE = auto()


ACTIVE_STATES: frozenset[GenerationState] = frozenset(
    {GenerationState.ACTIVE, GenerationState.WAITING, GenerationState.STREAMING}
)
TERMINAL_STATES: frozenset[GenerationState] = frozenset(
    {GenerationState.ERRORED, GenerationState.ABORTED, GenerationState.DONE}
)


def _error_only_when_errored(session: GenerationSession) -> tuple[bool, str]:
    return (
        session.error is None or session.state is GenerationState.ERRORED,
        f"error set while {session.state.name}",
    )


def _idle_has_no_content(session: GenerationSession) -> tuple[bool, str]:
    return (
        session.state is not GenerationState.IDLE or not session.content,
        "idle session holds content",
    )


@invariant(_error_only_when_errored, _idle_has_no_content)
@dataclass(frozen=True, slots=True)
class GenerationSession:
    """Immutable snapshot of one message's generation.

    ``content`` accumulates every text chunk since the last session start and
    survives a failure, so partially generated output stays visible next to
    the error.
    """

    message_id: str
    state: GenerationState = GenerationState.IDLE
    content: str = ""
    error: object = None

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def is_waiting(self) -> bool:
        return self.state is GenerationState.WAITING

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def evolve(
        self,
        state: GenerationState,
        *,
        content: str | None = None,
        error: object = None,
    ) -> GenerationSession:
        """Return a copy moved to ``state``; ``error`` is reset unless given."""

        return replace(
            self,
            state=state,
            content=self.content if content is None else content,
            error=error,
        )


__all__ = [
    "ACTIVE_STATES",
    "TERMINAL_STATES",
    "GenerationSession",
    "GenerationState",
]
