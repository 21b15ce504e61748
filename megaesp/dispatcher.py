"""Turn write intents from the state tree into device calls."""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from .definitions import PORT_DEFINITIONS, PortDefinition, PortMode
from .objects import DISPLAY_PREFIX, LCD, OLED, PORTS_PREFIX
from .parsers import parse_number
from .store import StateChange, StateStore
from .transport import MegaEspError, MegaEspTransport

_LOGGER = logging.getLogger(__name__)

PWM_MAX = 255
OLED_MIN_SIZE = 1
OLED_MAX_SIZE = 4

_DisplayHandler = Callable[["CommandDispatcher", StateChange], Awaitable[Any]]


def _as_int(value: Any) -> int | None:
    """Truncate ``value`` to an int the way ``parseInt`` would; None if invalid."""

    if isinstance(value, bool):
        return int(value)
    number = parse_number(value)
    if math.isnan(number):
        return None
    return int(number)


class CommandDispatcher:
    """Route unacknowledged state changes to the port or display protocol.

    Accepted writes are echoed back with ``ack=True`` right after the device
    call returns; the device is not read back to confirm the value.
    """

    def __init__(
        self,
        transport: MegaEspTransport,
        store: StateStore,
        ports: Sequence[PortDefinition] = PORT_DEFINITIONS,
    ) -> None:
        """Bind transport, store and the port table."""

        self._transport = transport
        self._store = store
        self._ports = {port.key: port for port in ports}

    async def async_handle_state_change(self, change: StateChange) -> None:
        """Handle one change published to the state tree."""

        if change.ack or change.value is None:
            return
        if change.path.startswith(f"{DISPLAY_PREFIX}."):
            await self._async_handle_display(change)
        elif change.path.startswith(f"{PORTS_PREFIX}."):
            await self._async_handle_port(change)

    async def _async_handle_port(self, change: StateChange) -> None:
        parts = change.path[len(PORTS_PREFIX) + 1 :].split(".")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            return
        port_key, prop = parts[0], parts[1]

        port = self._ports.get(port_key)
        if port is None:
            _LOGGER.warning("Write attempt on unknown state %s", change.path)
            return

        if prop == "state":
            if port.mode is not PortMode.OUTPUT:
                _LOGGER.warning("Write attempt on read-only state %s", change.path)
                return
            value = 1 if change.value else 0
            echo: Any = bool(change.value)
            command = self._transport.async_set_port(port.index, value)
        elif prop == "level":
            if port.mode is not PortMode.PWM:
                _LOGGER.warning("PWM write attempted on non-PWM port %s", port.label)
                return
            value = max(0, min(PWM_MAX, _as_int(change.value) or 0))
            echo = value
            command = self._transport.async_set_port(port.index, value)
        elif prop == "counter":
            if port.mode is not PortMode.INPUT:
                _LOGGER.warning(
                    "Counter write attempted on non-input port %s", port.label
                )
                return
            value = max(0, _as_int(change.value) or 0)
            echo = value
            command = self._transport.async_set_counter(port.index, value)
        else:
            _LOGGER.warning(
                "Unhandled writable property %s for port %s", prop, port.label
            )
            return

        try:
            await command
        except MegaEspError as err:
            _LOGGER.error("Failed to write %s: %s", change.path, err)
            return
        await self._store.async_write(change.path, echo, ack=True)

    async def _async_handle_display(self, change: StateChange) -> None:
        handler = _DISPLAY_HANDLERS.get(change.path)
        if handler is None:
            return
        try:
            echo = await handler(self, change)
        except MegaEspError as err:
            _LOGGER.error("Display command failed for %s: %s", change.path, err)
            return
        await self._store.async_write(change.path, echo, ack=True)

    async def _async_read_int(self, path: str, default: int) -> int:
        value = _as_int(await self._store.async_read(path))
        return default if not value else value

    async def _async_read_text(self, path: str) -> str:
        value = await self._store.async_read(path)
        return "" if value is None else str(value)

    async def _async_lcd_backlight(self, change: StateChange) -> bool:
        await self._transport.async_sec({"lcd": 1, "bl": 1 if change.value else 2})
        return bool(change.value)

    async def _async_lcd_clear(self, change: StateChange) -> bool:
        await self._transport.async_sec({"lcd": 1, "cl": 1})
        return False

    async def _async_lcd_send(self, change: StateChange) -> bool:
        await self._transport.async_sec(
            {
                "lcd": 1,
                "row": await self._async_read_int(f"{LCD}.row", 0),
                "col": await self._async_read_int(f"{LCD}.col", 0),
                "cmd": await self._async_read_text(f"{LCD}.text"),
            }
        )
        return False

    async def _async_oled_invert(self, change: StateChange) -> bool:
        await self._transport.async_sec({"oled": 1, "inv": 1 if change.value else 0})
        return bool(change.value)

    async def _async_oled_clear(self, change: StateChange) -> bool:
        await self._transport.async_sec({"oled": 1, "cl": 1})
        return False

    async def _async_oled_send(self, change: StateChange) -> bool:
        size = await self._async_read_int(f"{OLED}.size", OLED_MIN_SIZE)
        await self._transport.async_sec(
            {
                "oled": 1,
                "row": await self._async_read_int(f"{OLED}.row", 0),
                "col": await self._async_read_int(f"{OLED}.col", 0),
                "size": max(OLED_MIN_SIZE, min(OLED_MAX_SIZE, size)),
                "cmd": await self._async_read_text(f"{OLED}.text"),
            }
        )
        return False


_DISPLAY_HANDLERS: dict[str, _DisplayHandler] = {
    f"{LCD}.backlight": CommandDispatcher._async_lcd_backlight,
    f"{LCD}.clear": CommandDispatcher._async_lcd_clear,
    f"{LCD}.send": CommandDispatcher._async_lcd_send,
    f"{OLED}.invert": CommandDispatcher._async_oled_invert,
    f"{OLED}.clear": CommandDispatcher._async_oled_clear,
    f"{OLED}.send": CommandDispatcher._async_oled_send,
}
