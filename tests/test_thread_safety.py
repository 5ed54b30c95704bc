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

"""Concurrency regression tests for registry and dispatcher."""

from __future__ import annotations

from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from random import shuffle
from threading import Event, Thread

import pytest

from chatstream import (
    DispatchStatus,
    GenerationConsumer,
    GenerationSession,
    GenerationState,
    MessageBinder,
    SessionEventDispatcher,
)
from chatstream.dbc import dbc_enabled
from chatstream.events import Done, SessionStart, Text


@pytest.fixture(autouse=True)
def contracts_off() -> Iterator[None]:
    """The purity check disables logging process-wide while it runs."""

    with dbc_enabled(active=False):
        yield


def test_parallel_sessions_keep_their_own_content(
    dispatcher: SessionEventDispatcher, binder: MessageBinder
) -> None:
    message_ids = [f"m{index}" for index in range(16)]
    views = [binder.mount(message_id) for message_id in message_ids]

    def stream(message_id: str) -> None:
        dispatcher.publish(SessionStart(message_id))
        for index in range(50):
            dispatcher.publish(Text(message_id, f"{index},"))
        dispatcher.publish(Done(message_id))

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(stream, message_ids))

    expected = "".join(f"{index}," for index in range(50))
    for view in views:
        assert view.consumer.state is GenerationState.DONE
        assert view.consumer.content == expected


def test_concurrent_registration_churn_is_consistent(
    dispatcher: SessionEventDispatcher,
) -> None:
    consumers = [GenerationConsumer(f"m{index % 4}") for index in range(64)]
    shuffle(consumers)

    def churn(consumer: GenerationConsumer) -> DispatchStatus:
        subscription = dispatcher.register(consumer.message_id, consumer)
        result = dispatcher.publish(SessionStart(consumer.message_id))
        subscription.unregister()
        return result.status

    with ThreadPoolExecutor(max_workers=8) as executor:
        statuses = list(executor.map(churn, consumers))

    assert set(statuses) <= {DispatchStatus.DELIVERED, DispatchStatus.UNROUTED}
    assert len(dispatcher.registry) == 0


def test_apply_is_serialised_per_consumer() -> None:
    consumer = GenerationConsumer("m1")
    consumer.apply(SessionStart("m1"))

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(lambda _: consumer.apply(Text("m1", "x")), range(500)))

    assert consumer.content == "x" * 500


def test_observers_see_changes_in_transition_order() -> None:
    consumer = GenerationConsumer("m1")
    consumer.apply(SessionStart("m1"))
    seen: list[str] = []
    first_notified = Event()
    release_first = Event()

    def slow_observer(old: GenerationSession, new: GenerationSession) -> None:
        del old
        if new.content == "a":
            first_notified.set()
            release_first.wait(timeout=5)
        seen.append(new.content)

    consumer.observe(slow_observer)

    first = Thread(target=consumer.apply, args=(Text("m1", "a"),))
    second = Thread(target=consumer.apply, args=(Text("m1", "b"),))
    first.start()
    assert first_notified.wait(timeout=5)
    second.start()
    second.join(timeout=0.2)
    release_first.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert consumer.content == "ab"
    assert seen == ["a", "ab"]
    assert seen[-1] == consumer.content
