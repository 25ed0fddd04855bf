# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Session-change notifications."""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeAlias, TypeVar

from social_auth.domain.users.entities import UserIdentity
from social_auth.shared.logging import logger


@dataclass(frozen=True, slots=True)
class LoggedIn:
    user: UserIdentity


@dataclass(frozen=True, slots=True)
class LoggedOut:
    pass


SessionEvent: TypeAlias = LoggedIn | LoggedOut
SessionListener: TypeAlias = Callable[[SessionEvent], None]

T = TypeVar("T")

_CLOSED = object()


class Subscription:
    def __init__(self, bus: SessionEventBus, listener: SessionListener) -> None:
        self._bus = bus
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._bus._remove(self._listener)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class EventStream(Generic[T]):
    """Async iterator over bus events, buffered from the moment it is created.

    A stream that is not read to the end should be closed with ``aclose()``
    or used as ``async with``. An abandoned stream is detached from the bus
    when it is garbage collected.
    """

    def __init__(self, bus: SessionEventBus, transform: Callable[[SessionEvent], T]) -> None:
        self._transform = transform
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._done = False
        bus._attach(self._queue)
        self._detach = weakref.finalize(self, bus._detach, self._queue)

    def __aiter__(self) -> EventStream[T]:
        return self

    async def __anext__(self) -> T:
        if self._done:
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _CLOSED:
            await self.aclose()
            raise StopAsyncIteration
        return self._transform(item)  # type: ignore[arg-type]

    async def aclose(self) -> None:
        self._done = True
        self._detach()

    async def __aenter__(self) -> EventStream[T]:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class SessionEventBus:
    """Broadcasts session events to every subscriber.

    Listeners are plain callables run synchronously on ``publish``. Async
    consumers use ``listen()``, which buffers events in a per-consumer queue.
    """

    def __init__(self) -> None:
        self._listeners: list[SessionListener] = []
        self._queues: list[asyncio.Queue[object]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners) + len(self._queues)

    def subscribe(self, listener: SessionListener) -> Subscription:
        if self._closed:
            raise RuntimeError("SessionEventBus is closed")
        self._listeners.append(listener)
        logger.debug(f"SessionEventBus: subscribed listeners={len(self._listeners)}")
        return Subscription(self, listener)

    def _remove(self, listener: SessionListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return
        logger.debug(f"SessionEventBus: unsubscribed listeners={len(self._listeners)}")

    def publish(self, event: SessionEvent) -> None:
        if self._closed:
            logger.warning(f"SessionEventBus: publish after close event={type(event).__name__}")
            return

        logger.debug(f"SessionEventBus: publish event={type(event).__name__}")

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("SessionEventBus: listener failed")

        for queue in self._queues:
            queue.put_nowait(event)

    def listen(self) -> EventStream[SessionEvent]:
        return EventStream(self, lambda event: event)

    def auth_state_changes(self) -> EventStream[UserIdentity | None]:
        return EventStream(
            self, lambda event: event.user if isinstance(event, LoggedIn) else None
        )

    def _attach(self, queue: asyncio.Queue[object]) -> None:
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._queues.append(queue)

    def _detach(self, queue: asyncio.Queue[object]) -> None:
        if queue in self._queues:
            self._queues.remove(queue)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        for queue in self._queues:
            queue.put_nowait(_CLOSED)
        logger.debug("SessionEventBus: closed")


__all__ = [
    "EventStream",
    "LoggedIn",
    "LoggedOut",
    "SessionEvent",
    "SessionEventBus",
    "SessionListener",
    "Subscription",
]
