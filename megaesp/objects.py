"""State tree layout of a MegaESP board."""

from __future__ import annotations

from collections.abc import Sequence

from .const import CONNECTION_STATE
from .definitions import (
    I2C_SENSORS,
    PORT_DEFINITIONS,
    PortDefinition,
    PortMode,
    SensorDefinition,
)
from .store import StateObject, StateStore

PORTS_PREFIX = "ports"
DISPLAY_PREFIX = "display"
ONEWIRE_CHANNEL = "sensors.onewire"
I2C_PREFIX = "sensors.i2c"

LCD = "display.lcd"
OLED = "display.oled"


def port_path(port: PortDefinition, prop: str | None = None) -> str:
    """Return the path of ``port`` or of one of its properties."""

    base = f"{PORTS_PREFIX}.{port.key}"
    return base if prop is None else f"{base}.{prop}"


def sensor_path(sensor: SensorDefinition, leaf: str | None = None) -> str:
    """Return the path of an I2C sensor channel or one of its states."""

    base = f"{I2C_PREFIX}.{sensor.key}"
    return base if leaf is None else f"{base}.{leaf}"


def onewire_path(sensor_id: str) -> str:
    """Return the path of a discovered 1-Wire sensor."""

    return f"{ONEWIRE_CHANNEL}.{sensor_id}"


def onewire_object(name: str) -> StateObject:
    """Describe a 1-Wire temperature sensor discovered as ``name``."""

    return StateObject(
        type="state",
        name=name,
        value_type="number",
        role="value.temperature",
        unit="°C",
        native={"sensorName": name},
    )


def _channel(name: str, **native: object) -> StateObject:
    return StateObject(type="channel", name=name, native=dict(native))


def _port_objects(port: PortDefinition) -> dict[str, StateObject]:
    objects = {
        port_path(port): _channel(
            port.label, idx=port.index, gpioLabel=port.label, mode=port.mode.value
        )
    }
    if port.mode in (PortMode.OUTPUT, PortMode.INPUT):
        is_output = port.mode is PortMode.OUTPUT
        objects[port_path(port, "state")] = StateObject(
            type="state",
            name=f"{port.label} state",
            value_type="boolean",
            role="switch" if is_output else "sensor",
            write=is_output,
        )
    if port.mode is PortMode.PWM:
        objects[port_path(port, "level")] = StateObject(
            type="state",
            name=f"{port.label} PWM",
            value_type="number",
            role="level.dimmer",
            write=True,
            min=0,
            max=255,
        )
    if port.mode is PortMode.ANALOG:
        objects[port_path(port, "value")] = StateObject(
            type="state",
            name=f"{port.label} analog",
            value_type="number",
            role="value",
            min=0,
            max=1023,
        )
    if port.mode is PortMode.INPUT:
        objects[port_path(port, "counter")] = StateObject(
            type="state",
            name=f"{port.label} counter",
            value_type="number",
            role="value",
            write=True,
            default=0,
        )
    return objects


def _sensor_objects(sensor: SensorDefinition) -> dict[str, StateObject]:
    objects = {
        sensor_path(sensor): _channel(
            f"{sensor.label} (P{sensor.virtual_port})", port=sensor.virtual_port
        ),
        sensor_path(sensor, "port"): StateObject(
            type="state",
            name="Virtual port",
            value_type="string",
            role="text",
            native={"port": sensor.virtual_port},
        ),
    }
    for metric in sensor.metrics:
        objects[sensor_path(sensor, metric.id)] = StateObject(
            type="state",
            name=f"{sensor.label} {metric.id}",
            value_type="string" if metric.is_text else "number",
            role=metric.role,
            unit=metric.unit or None,
            native={"field": metric.wire_field},
        )
    return objects


def _switch(name: str) -> StateObject:
    return StateObject(
        type="state", name=name, value_type="boolean", role="switch", write=True
    )


def _button(name: str) -> StateObject:
    return StateObject(
        type="state",
        name=name,
        value_type="boolean",
        role="button",
        read=False,
        write=True,
    )


def _level(name: str, **limits: float) -> StateObject:
    return StateObject(
        type="state",
        name=name,
        value_type="number",
        role="level",
        write=True,
        **limits,
    )


def _text(name: str) -> StateObject:
    return StateObject(
        type="state", name=name, value_type="string", role="text", write=True
    )


def _display_objects() -> dict[str, StateObject]:
    return {
        DISPLAY_PREFIX: _channel("Display"),
        LCD: _channel("LCD"),
        f"{LCD}.backlight": _switch("Backlight"),
        f"{LCD}.clear": _button("Clear"),
        f"{LCD}.row": _level("Row"),
        f"{LCD}.col": _level("Col"),
        f"{LCD}.text": _text("Text"),
        f"{LCD}.send": _button("Send"),
        OLED: _channel("OLED"),
        f"{OLED}.invert": _switch("Invert"),
        f"{OLED}.clear": _button("Clear"),
        f"{OLED}.size": _level("Size", min=1, max=4),
        f"{OLED}.row": _level("Row"),
        f"{OLED}.col": _level("Col"),
        f"{OLED}.text": _text("Text"),
        f"{OLED}.send": _button("Send"),
    }


def build_objects(
    ports: Sequence[PortDefinition] = PORT_DEFINITIONS,
    sensors: Sequence[SensorDefinition] = I2C_SENSORS,
) -> dict[str, StateObject]:
    """Return every static object of the tree keyed by path."""

    objects: dict[str, StateObject] = {
        CONNECTION_STATE: StateObject(
            type="state",
            name="Connection state",
            value_type="boolean",
            role="indicator.connected",
            default=False,
        )
    }
    for port in ports:
        objects.update(_port_objects(port))
    objects[ONEWIRE_CHANNEL] = _channel("1-Wire sensors")
    for sensor in sensors:
        objects.update(_sensor_objects(sensor))
    objects.update(_display_objects())
    return objects


async def async_create_objects(
    store: StateStore,
    ports: Sequence[PortDefinition] = PORT_DEFINITIONS,
    sensors: Sequence[SensorDefinition] = I2C_SENSORS,
) -> None:
    """Register the static tree, leaving existing objects untouched."""

    for path, obj in build_objects(ports, sensors).items():
        await store.async_create_if_absent(path, obj)


async def async_ensure_display_defaults(store: StateStore) -> None:
    """Publish the initial cursor position and OLED font size."""

    await store.async_write(f"{LCD}.row", 0, ack=True)
    await store.async_write(f"{LCD}.col", 0, ack=True)
    await store.async_write(f"{OLED}.row", 0, ack=True)
    await store.async_write(f"{OLED}.col", 0, ack=True)
    await store.async_write(f"{OLED}.size", 1, ack=True)
