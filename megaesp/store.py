"""State store collaborator used by the bridge.

The bridge never owns the state tree; it talks to it through the
:class:`StateStore` protocol. :class:`InMemoryStateStore` is a complete
implementation used by the debug tool and the test-suite.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any, Protocol

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class StateObject:
    """Metadata describing a node of the state tree."""

    type: str
    name: str
    value_type: str | None = None
    role: str | None = None
    read: bool = True
    write: bool = False
    unit: str | None = None
    min: float | None = None
    max: float | None = None
    default: Any = None
    native: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StateChange:
    """A value published to the state tree.

    ``ack`` is False for write intents coming from users or scripts and True
    for values confirmed by the bridge.
    """

    path: str
    value: Any
    ack: bool


StateCallback = Callable[[StateChange], Awaitable[None] | None]


class StateStore(Protocol):
    """Operations the bridge needs from the host state tree."""

    async def async_create_if_absent(self, path: str, obj: StateObject) -> bool:
        """Register ``obj`` under ``path`` unless something is already there."""

    async def async_write(self, path: str, value: Any, *, ack: bool) -> None:
        """Publish ``value`` under ``path``."""

    async def async_read(self, path: str) -> Any:
        """Return the current value under ``path`` or ``None``."""

    async def async_subscribe(
        self, pattern: str, callback: StateCallback
    ) -> Callable[[], None]:
        """Deliver changes matching ``pattern`` to ``callback``."""


class InMemoryStateStore:
    """Dictionary backed :class:`StateStore`.

    Subscribers are invoked as separate tasks, like a real host would deliver
    them, so a write never waits for the handlers it triggers. Use
    :meth:`async_block_till_done` to wait for them.
    """

    def __init__(self) -> None:
        """Initialise empty object and state tables."""

        self.objects: dict[str, StateObject] = {}
        self.states: dict[str, StateChange] = {}
        self._subscriptions: list[tuple[str, StateCallback]] = []
        self._pending_tasks: set[asyncio.Task[Any]] = set()

    async def async_create_if_absent(self, path: str, obj: StateObject) -> bool:
        """Register ``obj`` and return True when it was created."""

        if path in self.objects:
            return False
        self.objects[path] = obj
        return True

    async def async_write(self, path: str, value: Any, *, ack: bool) -> None:
        """Store ``value`` and notify matching subscribers."""

        change = StateChange(path, value, ack)
        self.states[path] = change
        for pattern, callback in list(self._subscriptions):
            if fnmatchcase(path, pattern):
                self._dispatch(callback, change)

    async def async_read(self, path: str) -> Any:
        """Return the stored value for ``path``."""

        change = self.states.get(path)
        return None if change is None else change.value

    def get_state(self, path: str) -> StateChange | None:
        """Return the last change recorded for ``path``, including ``ack``."""

        return self.states.get(path)

    async def async_subscribe(
        self, pattern: str, callback: StateCallback
    ) -> Callable[[], None]:
        """Register ``callback`` for paths matching the glob ``pattern``."""

        subscription = (pattern, callback)
        self._subscriptions.append(subscription)

        def _unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return _unsubscribe

    def _dispatch(self, callback: StateCallback, change: StateChange) -> None:
        """Run ``callback`` for ``change`` in its own task."""

        async def _runner() -> None:
            try:
                result = callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _LOGGER.exception("State subscriber failed for %s", change.path)

        task = asyncio.get_running_loop().create_task(_runner())
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def async_block_till_done(self) -> None:
        """Wait until every subscriber task (and the ones they spawn) finished."""

        while self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks))
