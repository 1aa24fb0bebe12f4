"""Per-instance ``debounce`` and ``throttle`` decorators for asyncio methods."""

from __future__ import annotations

import asyncio
import contextlib
import functools
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Set, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class _DebounceState:
    handle: asyncio.TimerHandle | None = None
    tasks: Set["asyncio.Future[Any]"] = field(default_factory=set)


@dataclass(slots=True)
class _ThrottleState:
    current: "asyncio.Future[Any] | None" = None
    next: "asyncio.Future[Any] | None" = None


def _instance_state(instance: Any, key: str, factory: Callable[[], T]) -> T:
    state = instance.__dict__.get(key)
    if state is None:
        state = factory()
        instance.__dict__[key] = state
    return state


def debounce(delay: float | Callable[[Any], float]) -> Callable[[Callable[..., Any]], Callable[..., None]]:
    """Run the decorated method once ``delay`` seconds after the last call.

    ``delay`` may be a callable receiving the instance, for per-instance
    configuration. Must be called from a running event loop. Coroutine
    results are scheduled as tasks; their failures are logged.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., None]:
        key = f"__debounce_{fn.__name__}"

        @functools.wraps(fn)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> None:
            state = _instance_state(self, key, _DebounceState)
            if state.handle is not None:
                state.handle.cancel()
            seconds = delay(self) if callable(delay) else delay
            loop = asyncio.get_running_loop()

            def fire() -> None:
                state.handle = None
                result = fn(self, *args, **kwargs)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    state.tasks.add(task)
                    task.add_done_callback(functools.partial(_finish_debounced, state, fn.__qualname__))

            state.handle = loop.call_later(max(0.0, seconds), fire)

        return wrapper

    return decorator


def _finish_debounced(state: _DebounceState, name: str, task: "asyncio.Future[Any]") -> None:
    state.tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.error("Debounced call %s failed", name, exc_info=exc)


def throttle(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Allow one in-flight invocation per instance.

    Calls made while one is running coalesce into a single follow-up
    invocation (with the arguments of the call that scheduled it) that starts
    once the current one settles; every coalesced caller receives its result.
    """

    key = f"__throttle_{fn.__name__}"

    @functools.wraps(fn)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
        state = _instance_state(self, key, _ThrottleState)

        def start() -> "asyncio.Future[T]":
            task = asyncio.ensure_future(fn(self, *args, **kwargs))
            state.current = task

            def clear(done: "asyncio.Future[Any]") -> None:
                if state.current is done:
                    state.current = None

            task.add_done_callback(clear)
            return task

        if state.current is not None:
            if state.next is None:
                previous = state.current

                async def chained() -> T:
                    with contextlib.suppress(Exception):
                        await previous
                    state.next = None
                    return await start()

                state.next = asyncio.ensure_future(chained())
            return await asyncio.shield(state.next)

        return await asyncio.shield(start())

    return wrapper


__all__ = ["debounce", "throttle"]
