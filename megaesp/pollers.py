"""Pollers keeping the state tree in sync with the device."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Sequence

from .const import DEFAULT_ONEWIRE_PORT
from .definitions import (
    I2C_SENSORS,
    PORT_DEFINITIONS,
    PortDefinition,
    PortMode,
    SensorDefinition,
)
from .objects import onewire_object, onewire_path, port_path, sensor_path
from .parsers import (
    parse_key_value_list,
    parse_key_value_pairs,
    parse_number,
    parse_switch_value,
    round_metric,
    sanitize_id,
)
from .store import StateStore
from .transport import MegaEspError, MegaEspTransport

_LOGGER = logging.getLogger(__name__)


class PortPoller:
    """Read all physical ports with one ``cmd=all`` request."""

    def __init__(
        self,
        transport: MegaEspTransport,
        store: StateStore,
        ports: Sequence[PortDefinition] = PORT_DEFINITIONS,
    ) -> None:
        """Bind transport, store and the port table."""

        self._transport = transport
        self._store = store
        self._ports = {port.index: port for port in ports}

    async def async_poll(self) -> None:
        """Fetch the status list and publish every known position."""

        try:
            response = await self._transport.async_get_all()
        except MegaEspError as err:
            _LOGGER.warning("Failed to poll ports: %s", err)
            return
        if not response:
            return
        for index, raw in enumerate(response.split(";")):
            port = self._ports.get(index)
            if port is None:
                continue
            await self._async_publish(port, raw)

    async def _async_publish(self, port: PortDefinition, raw: str) -> None:
        if port.mode in (PortMode.OUTPUT, PortMode.INPUT):
            value = parse_switch_value(raw)
            await self._store.async_write(
                port_path(port, "state"), value.state, ack=True
            )
            if port.mode is PortMode.INPUT and value.counter is not None:
                await self._store.async_write(
                    port_path(port, "counter"), value.counter, ack=True
                )
            return

        number = parse_number(raw)
        if math.isnan(number):
            return
        prop = "level" if port.mode is PortMode.PWM else "value"
        await self._store.async_write(port_path(port, prop), number, ack=True)


class OneWirePoller:
    """Read the 1-Wire bus and grow the sensor list as sensors show up."""

    def __init__(
        self,
        transport: MegaEspTransport,
        store: StateStore,
        port: int = DEFAULT_ONEWIRE_PORT,
    ) -> None:
        """Bind transport, store and the virtual port serving the bus."""

        self._transport = transport
        self._store = store
        self._port = port
        self.known_sensors: dict[str, str] = {}

    async def async_poll(self) -> None:
        """Publish every ``name=value`` pair reported by the bus."""

        try:
            response = await self._transport.async_get_port(self._port)
        except MegaEspError as err:
            _LOGGER.warning("Failed to poll 1-Wire sensors: %s", err)
            return
        for name, raw in parse_key_value_pairs(response):
            sensor_id = sanitize_id(name)
            if not sensor_id:
                _LOGGER.debug("Skipping 1-Wire sensor with unusable name %r", name)
                continue
            path = onewire_path(sensor_id)
            # The host may drop objects at any time; register on every reading.
            await self._store.async_create_if_absent(path, onewire_object(name))
            if sensor_id not in self.known_sensors:
                _LOGGER.info("Discovered 1-Wire sensor %s", name)
                self.known_sensors[sensor_id] = name
            value = parse_number(raw)
            await self._store.async_write(
                path, None if math.isnan(value) else value, ack=True
            )


class I2CPoller:
    """Read every I2C sensor concurrently, one request per virtual port."""

    def __init__(
        self,
        transport: MegaEspTransport,
        store: StateStore,
        sensors: Sequence[SensorDefinition] = I2C_SENSORS,
    ) -> None:
        """Bind transport, store and the sensor table."""

        self._transport = transport
        self._store = store
        self._sensors = tuple(sensors)

    async def async_poll(self) -> None:
        """Poll all sensors and wait until every request has settled."""

        await asyncio.gather(
            *(self._async_poll_sensor(sensor) for sensor in self._sensors)
        )

    async def _async_poll_sensor(self, sensor: SensorDefinition) -> None:
        try:
            response = await self._transport.async_get_port(sensor.virtual_port)
        except MegaEspError as err:
            _LOGGER.debug("I2C sensor P%s polling failed: %s", sensor.virtual_port, err)
            await self._async_clear(sensor)
            return

        await self._store.async_write(
            sensor_path(sensor, "port"), f"P{sensor.virtual_port}", ack=True
        )
        data = parse_key_value_list(response)
        if not data:
            await self._async_clear(sensor)
            return

        for metric in sensor.metrics:
            raw = data.get(metric.wire_field)
            if raw is None:
                value = None
            elif metric.decimals is None:
                value = raw
            else:
                value = round_metric(raw, metric.decimals)
            await self._store.async_write(
                sensor_path(sensor, metric.id), value, ack=True
            )

    async def _async_clear(self, sensor: SensorDefinition) -> None:
        for metric in sensor.metrics:
            await self._store.async_write(
                sensor_path(sensor, metric.id), None, ack=True
            )
