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

"""Design-by-contract helpers for :mod:`chatstream`.

Contracts are disabled by default and cost a single flag check per call.
Set ``CHATSTREAM_DBC=1`` (or call :func:`enable_dbc`) to evaluate them; the
test suite turns them on for every test.
"""

from __future__ import annotations

import builtins
import copy
import logging
import os
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import ExitStack, contextmanager
from functools import wraps
from pathlib import Path
from threading import RLock
from typing import ParamSpec, TypeVar, cast

from ..types import ContractResult

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T", bound=object)

ContractCallable = Callable[..., ContractResult | object]

DBC_ENV = "CHATSTREAM_DBC"
_forced_state: bool | None = None


def coerce_flag(value: str | None) -> bool:
    """Interpret an environment flag; empty, 0, false, off and no are falsy."""

    if value is None:
        return False
    return value.strip().lower() not in {"", "0", "false", "off", "no"}


def dbc_active() -> bool:
    """Return ``True`` when contract checks should run."""

    if _forced_state is not None:
        return _forced_state
    return coerce_flag(os.getenv(DBC_ENV))


def enable_dbc() -> None:
    """Force contract enforcement on."""

    global _forced_state
    _forced_state = True


def disable_dbc() -> None:
    """Force contract enforcement off."""

    global _forced_state
    _forced_state = False


@contextmanager
def dbc_enabled(*, active: bool = True) -> Iterator[None]:
    """Temporarily set the contract flag inside a ``with`` block."""

    global _forced_state
    previous = _forced_state
    _forced_state = active
    try:
        yield
    finally:
        _forced_state = previous


def _qualname(target: object) -> str:
    return getattr(target, "__qualname__", repr(target))


def _normalize_contract_result(result: object) -> tuple[bool, str | None]:
    if isinstance(result, tuple):
        sequence_result = cast(Sequence[object], result)
        if not sequence_result:
            raise TypeError("Contract callables must not return empty tuples")
        detail = None if len(sequence_result) == 1 else str(sequence_result[1])
        return bool(sequence_result[0]), detail
    if result is None:
        return False, None
    return bool(result), None


def _evaluate_contract(
    *,
    kind: str,
    func: Callable[..., object],
    predicate: ContractCallable,
    args: tuple[object, ...],
    kwargs: Mapping[str, object],
) -> None:
    try:
        result = predicate(*args, **kwargs)
    except AssertionError:
        raise
    except Exception as exc:
        msg = f"{kind} contract for {_qualname(func)} raised {type(exc).__name__}: {exc}"
        raise AssertionError(msg) from exc

    outcome, detail = _normalize_contract_result(result)
    if outcome:
        return
    predicate_name = getattr(predicate, "__name__", repr(predicate))
    message = (
        f"{kind} contract for {_qualname(func)} failed via {predicate_name}."
        f" Args={args!r} Kwargs={dict(kwargs)!r}"
    )
    if detail:
        message = f"{message} Details: {detail}"
    raise AssertionError(message)


def require(
    *predicates: ContractCallable,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Validate preconditions before invoking the wrapped callable."""

    if not predicates:
        raise ValueError("@require expects at least one predicate")

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            if dbc_active():
                for predicate in predicates:
                    _evaluate_contract(
                        kind="require",
                        func=func,
                        predicate=predicate,
                        args=tuple(args),
                        kwargs=kwargs,
                    )
            return func(*args, **kwargs)

        return wrapped

    return decorator


def ensure(*predicates: ContractCallable) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Validate postconditions once the callable returns.

    Predicates receive the original arguments plus ``result=`` as a keyword.
    Exceptions raised by the wrapped callable propagate unchecked.
    """

    if not predicates:
        raise ValueError("@ensure expects at least one predicate")

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
            result = func(*args, **kwargs)
            if dbc_active():
                for predicate in predicates:
                    _evaluate_contract(
                        kind="ensure",
                        func=func,
                        predicate=predicate,
                        args=tuple(args),
                        kwargs={**kwargs, "result": result},
                    )
            return result

        return wrapped

    return decorator


def invariant(*predicates: ContractCallable) -> Callable[[type[T]], type[T]]:
    """Check class invariants after construction and around public methods."""

    if not predicates:
        raise ValueError("@invariant expects at least one predicate")

    def check(instance: object, func: Callable[..., object]) -> None:
        for predicate in predicates:
            _evaluate_contract(
                kind="invariant",
                func=func,
                predicate=predicate,
                args=(instance,),
                kwargs={},
            )

    def wrap_method(method: Callable[..., object]) -> Callable[..., object]:
        @wraps(method)
        def wrapper(self: object, *args: object, **kwargs: object) -> object:
            if not dbc_active():
                return method(self, *args, **kwargs)
            check(self, method)
            try:
                return method(self, *args, **kwargs)
            finally:
                check(self, method)

        return wrapper

    def decorator(cls: type[T]) -> type[T]:
        original_init = cls.__init__

        @wraps(original_init)
        def init_wrapper(self: object, *args: object, **kwargs: object) -> None:
            original_init(self, *args, **kwargs)
            if dbc_active():
                check(self, original_init)

        type.__setattr__(cls, "__init__", init_wrapper)

        for name, attribute in list(cls.__dict__.items()):
            if name.startswith("_") or isinstance(attribute, staticmethod | classmethod):
                continue
            if callable(attribute):
                setattr(cls, name, wrap_method(attribute))
        return cls

    return decorator


_SNAPSHOT_SENTINEL = object()
# Guards the process-wide patches installed while a pure call runs.
_PURE_LOCK = RLock()


def _snapshot(value: object) -> object:
    try:
        snapshot = copy.deepcopy(value)
    except Exception:
        return _SNAPSHOT_SENTINEL
    # Values without structural equality (e.g. exceptions) cannot be checked.
    if snapshot != value:
        return _SNAPSHOT_SENTINEL
    return snapshot


@contextmanager
def _patch(
    obj: object, attribute: str, replacement: Callable[..., object]
) -> Iterator[None]:
    original = getattr(obj, attribute)
    setattr(obj, attribute, replacement)
    try:
        yield
    finally:
        setattr(obj, attribute, original)


def _pure_violation(func: Callable[..., object], target: str) -> Callable[..., object]:
    def raiser(*args: object, **kwargs: object) -> object:
        raise AssertionError(
            f"pure contract for {_qualname(func)} forbids calling {target}"
        )

    return raiser


@contextmanager
def _pure_environment(func: Callable[..., object]) -> Iterator[None]:
    with _PURE_LOCK, ExitStack() as stack:
        stack.enter_context(
            _patch(builtins, "open", _pure_violation(func, "builtins.open"))
        )
        stack.enter_context(
            _patch(Path, "write_text", _pure_violation(func, "Path.write_text"))
        )
        stack.enter_context(
            _patch(logging.Logger, "_log", _pure_violation(func, "logging"))
        )
        yield


def pure(func: Callable[P, R]) -> Callable[P, R]:  # noqa: UP047
    """Validate that the wrapped callable does not mutate inputs or do I/O.

    Arguments are deep-copied before the call and compared afterwards; file
    writes and logging raise ``AssertionError`` while the call runs.
    """

    @wraps(func)
    def wrapped(*args: P.args, **kwargs: P.kwargs) -> R:
        if not dbc_active():
            return func(*args, **kwargs)

        snapshot_args = tuple(_snapshot(arg) for arg in args)
        snapshot_kwargs = {key: _snapshot(value) for key, value in kwargs.items()}

        with _pure_environment(func):
            result = func(*args, **kwargs)

        for index, (original, snapshot) in enumerate(zip(args, snapshot_args, strict=True)):
            if snapshot is not _SNAPSHOT_SENTINEL and original != snapshot:
                raise AssertionError(
                    f"pure contract for {_qualname(func)} detected mutation of "
                    f"positional argument {index}"
                )
        for key, snapshot in snapshot_kwargs.items():
            if snapshot is not _SNAPSHOT_SENTINEL and kwargs[key] != snapshot:
                raise AssertionError(
                    f"pure contract for {_qualname(func)} detected mutation of "
                    f"keyword argument '{key}'"
                )
        return result

    return wrapped


__all__ = [
    "DBC_ENV",
    "coerce_flag",
    "dbc_active",
    "dbc_enabled",
    "disable_dbc",
    "enable_dbc",
    "ensure",
    "invariant",
    "pure",
    "require",
]
