"""Coordinator owning one bridge instance: polling, commands and teardown."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

import httpx

from .admin import AdminHandler
from .config import MegaEspConfig
from .const import CONNECTION_STATE
from .definitions import (
    I2C_SENSORS,
    PORT_DEFINITIONS,
    PortDefinition,
    SensorDefinition,
)
from .dispatcher import CommandDispatcher
from .objects import (
    DISPLAY_PREFIX,
    PORTS_PREFIX,
    async_create_objects,
    async_ensure_display_defaults,
)
from .pollers import I2CPoller, OneWirePoller, PortPoller
from .store import StateStore
from .transport import MegaEspTransport

_LOGGER = logging.getLogger(__name__)


class MegaEspCoordinator:
    """Session object tying transport, pollers and dispatcher to one device.

    Endpoint, secret and poll timer live on the instance rather than in module
    globals, so several bridges can run side by side in one event loop.
    """

    def __init__(
        self,
        store: StateStore,
        config: MegaEspConfig,
        *,
        client: httpx.AsyncClient | None = None,
        ports: Sequence[PortDefinition] = PORT_DEFINITIONS,
        sensors: Sequence[SensorDefinition] = I2C_SENSORS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Build the components of one bridge instance."""

        self.store = store
        self.config = config
        self.transport = MegaEspTransport(
            config.host, config.port, config.password, client=client
        )
        self._ports = tuple(ports)
        self._sensors = tuple(sensors)
        self._loop = loop
        self.port_poller = PortPoller(self.transport, store, self._ports)
        self.onewire_poller = OneWirePoller(
            self.transport, store, config.onewire_port
        )
        self.i2c_poller = I2CPoller(self.transport, store, self._sensors)
        self.dispatcher = CommandDispatcher(self.transport, store, self._ports)
        self.admin = AdminHandler(self.transport, config)
        self._refresh_handle: asyncio.TimerHandle | None = None
        self._pending_tasks: set[asyncio.Task[Any]] = set()
        self._unsubscribers: list[Callable[[], None]] = []
        self.connected = False

    @property
    def _refresh_interval_seconds(self) -> float:
        return self.config.poll_interval.total_seconds()

    async def async_start(self) -> None:
        """Register objects, poll once, then start the timer and subscriptions."""

        _LOGGER.info("Initialising MegaESP bridge for %s", self.config.base_url)
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        await async_create_objects(self.store, self._ports, self._sensors)
        await async_ensure_display_defaults(self.store)
        await self.async_poll_all()
        self.async_schedule_refresh()

        for prefix in (PORTS_PREFIX, DISPLAY_PREFIX):
            self._unsubscribers.append(
                await self.store.async_subscribe(
                    f"{prefix}.*", self.dispatcher.async_handle_state_change
                )
            )
        self.connected = True
        await self.store.async_write(CONNECTION_STATE, True, ack=True)

    async def async_poll_all(self) -> None:
        """Run one poll cycle: ports, then 1-Wire, then I2C."""

        await self.port_poller.async_poll()
        await self.onewire_poller.async_poll()
        await self.i2c_poller.async_poll()

    def async_schedule_refresh(self) -> asyncio.TimerHandle:
        """Schedule recurring poll cycles."""

        loop = self._loop or asyncio.get_running_loop()

        def _wrapper() -> None:
            task = loop.create_task(self._async_scheduled_poll())
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)
            self._refresh_handle = loop.call_later(
                self._refresh_interval_seconds, _wrapper
            )

        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
        self._refresh_handle = loop.call_later(
            self._refresh_interval_seconds, _wrapper
        )
        return self._refresh_handle

    async def _async_scheduled_poll(self) -> None:
        try:
            await self.async_poll_all()
        except Exception as err:  # noqa: BLE001 - keep the timer alive
            _LOGGER.warning("Polling failed: %s", err)

    def cancel_refresh(self) -> None:
        """Cancel the scheduled poll cycle."""

        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None

    async def async_handle_message(
        self, command: str, message: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Forward an administrative message to the admin handler."""

        return await self.admin.async_handle(command, message)

    async def async_stop(self) -> None:
        """Stop polling, drop subscriptions and mark the bridge disconnected.

        A poll cycle already in flight is not cancelled; it is awaited (its
        requests are bounded by their timeouts) before the client is closed.
        """

        self.cancel_refresh()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.connected = False
        await self.store.async_write(CONNECTION_STATE, False, ack=True)
        if self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks))
        await self.transport.async_close()
