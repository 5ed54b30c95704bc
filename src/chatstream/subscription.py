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

"""Subscription handle returned by registration APIs."""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Self, override
from uuid import UUID, uuid4


class Subscription:
    """Handle for detaching a registration.

    ``unregister`` is idempotent: the first call runs the detach callback and
    reports its outcome, later calls return ``False``. Subscriptions are also
    context managers that unregister on exit.
    """

    __slots__ = ("_unregister_fn", "subscription_id")

    def __init__(
        self,
        unregister_fn: Callable[[], bool] | None = None,
        subscription_id: UUID | None = None,
    ) -> None:
        super().__init__()
        self.subscription_id: UUID = subscription_id or uuid4()
        self._unregister_fn = unregister_fn

    @property
    def active(self) -> bool:
        return self._unregister_fn is not None

    def unregister(self) -> bool:
        """Detach the registration. Returns ``True`` if anything was removed."""

        unregister_fn, self._unregister_fn = self._unregister_fn, None
        if unregister_fn is None:
            return False
        return unregister_fn()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.unregister()

    @override
    def __repr__(self) -> str:
        return f"Subscription(subscription_id={self.subscription_id!r}, active={self.active})"


__all__ = ["Subscription"]
