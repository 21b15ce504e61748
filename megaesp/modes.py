"""Translation between device port modes and admin-facing port types.

The device configuration document (``/config.json``) numbers port functions
with ``mode`` while the admin UI uses ``pty``. The two numbering schemes were
assigned independently, so both directions are explicit lookup tables.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .parsers import parse_number
from .transport import MegaEspError

UNMAPPED_PTY = 255
DEFAULT_TRIGGER = 2
PWM_MAX = 255


class GpioMode(IntEnum):
    """``mode`` values of a ``gpio`` entry in the device configuration."""

    INPUT = 0
    OUTPUT = 1
    PWM = 2
    ANALOG = 3
    DIGITAL_SENSOR = 4


class PortType(IntEnum):
    """``pty`` values used by the admin UI."""

    INPUT = 0
    OUTPUT_SWITCH = 1
    ADC = 2
    DIGITAL_SENSOR = 3
    PWM = 4


class DigitalSensorType(IntEnum):
    """Sensor attached to a port in digital sensor mode."""

    NONE = 0
    DS18B20 = 1
    DHT22 = 2


MODE_TO_PTY: Mapping[int, int] = {
    GpioMode.INPUT: PortType.INPUT,
    GpioMode.OUTPUT: PortType.OUTPUT_SWITCH,
    GpioMode.PWM: PortType.PWM,
    GpioMode.ANALOG: PortType.ADC,
    GpioMode.DIGITAL_SENSOR: PortType.DIGITAL_SENSOR,
}

PTY_TO_MODE: Mapping[int, int] = {
    PortType.INPUT: GpioMode.INPUT,
    PortType.OUTPUT_SWITCH: GpioMode.OUTPUT,
    PortType.ADC: GpioMode.ANALOG,
    PortType.DIGITAL_SENSOR: GpioMode.DIGITAL_SENSOR,
    PortType.PWM: GpioMode.PWM,
}


class ConfigDocumentError(MegaEspError):
    """Raised when a device configuration document cannot be used."""


def _as_int(value: Any, default: int = 0) -> int:
    """Coerce JSON-ish numbers (``"2"``, ``2.0``, ``True``) to ``int``."""

    if isinstance(value, bool):
        return int(value)
    number = parse_number(value)
    if math.isnan(number):
        return default
    return int(number)


def _as_code(value: Any) -> int | None:
    """Return ``value`` as an integral code, ``None`` for anything else."""

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))


def mode_to_pty(mode: Any) -> int:
    """Return the admin ``pty`` for a device ``mode``, 255 when unknown."""

    code = _as_code(mode)
    if code is None:
        return UNMAPPED_PTY
    return int(MODE_TO_PTY.get(code, UNMAPPED_PTY))


def pty_to_mode(pty: Any) -> int | None:
    """Return the device ``mode`` for an admin ``pty``, ``None`` when unknown."""

    code = _as_code(pty)
    if code is None:
        return None
    mode = PTY_TO_MODE.get(code)
    return None if mode is None else int(mode)


class UiPortDescriptor(BaseModel):
    """Port settings as edited in the admin UI.

    Only the fields the translation reads are declared; anything else the UI
    sends is kept as an extra attribute.
    """

    model_config = ConfigDict(extra="allow")

    pty: float | None = None
    name: str | None = None
    m: float | None = None
    d: float | None = None
    pwm: float | None = None

    @field_validator("pty", "m", "d", "pwm", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float | None:
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            return float(value)
        number = parse_number(value)
        return None if math.isnan(number) else number


class ConfigDocument(BaseModel):
    """The parts of ``/config.json`` the translation depends on."""

    model_config = ConfigDict(extra="allow")

    gpio: list[dict[str, Any]]
    defaultTrigger: Any = None

    @property
    def default_trigger(self) -> int:
        """Trigger written for non-input ports; falsy values mean 2."""

        return _as_int(self.defaultTrigger) or DEFAULT_TRIGGER


def load_config_document(document: Any) -> ConfigDocument:
    """Validate ``document`` and raise :class:`ConfigDocumentError` if unusable."""

    if not isinstance(document, Mapping):
        raise ConfigDocumentError("Invalid config.json from device")
    try:
        return ConfigDocument.model_validate(dict(document))
    except ValidationError as exc:
        raise ConfigDocumentError(f"Invalid config.json from device: {exc}") from exc


def _as_descriptor(descriptor: Any) -> UiPortDescriptor | None:
    if isinstance(descriptor, UiPortDescriptor):
        return descriptor
    if not isinstance(descriptor, Mapping):
        return None
    try:
        return UiPortDescriptor.model_validate(dict(descriptor))
    except ValidationError as exc:
        raise ConfigDocumentError(f"Invalid port descriptor: {exc}") from exc


def _translate_entry(
    entry: dict[str, Any], descriptor: UiPortDescriptor, mode: int, trigger: int
) -> dict[str, Any]:
    out = dict(entry)
    out["mode"] = mode
    out["state"] = 0
    out["trigger"] = trigger
    out["sensorType"] = DigitalSensorType.NONE.value
    if mode == GpioMode.INPUT:
        out["trigger"] = int(descriptor.m or 0)
    elif mode == GpioMode.OUTPUT:
        out["state"] = 1 if descriptor.d else 0
    elif mode == GpioMode.PWM:
        level = descriptor.pwm if descriptor.pwm is not None else descriptor.d or 0
        out["state"] = _clamp(int(level), 0, PWM_MAX)
    elif mode == GpioMode.DIGITAL_SENSOR:
        sensor = int(descriptor.d or 0)
        if sensor not in (DigitalSensorType.DS18B20, DigitalSensorType.DHT22):
            sensor = DigitalSensorType.DS18B20
        out["sensorType"] = int(sensor)
    return out


def apply_ui_descriptors(
    document: Mapping[str, Any], descriptors: Sequence[Any]
) -> dict[str, Any]:
    """Merge admin port descriptors into a device configuration document.

    Entries are matched by position. An entry without a descriptor, or whose
    descriptor carries no usable ``pty``, is passed through as the very same
    object; the result therefore never loses ports the UI does not know about.
    """

    if not isinstance(descriptors, Sequence) or isinstance(descriptors, (str, bytes)):
        raise ConfigDocumentError("Port descriptors must be a list")
    config = load_config_document(document)
    trigger = config.default_trigger
    gpio: list[dict[str, Any]] = []
    for index, entry in enumerate(document["gpio"]):
        descriptor = (
            _as_descriptor(descriptors[index]) if index < len(descriptors) else None
        )
        mode = pty_to_mode(descriptor.pty) if descriptor is not None else None
        if descriptor is None or mode is None:
            gpio.append(entry)
            continue
        gpio.append(_translate_entry(entry, descriptor, mode, trigger))

    result = dict(document)
    result["gpio"] = gpio
    return result


def describe_gpio_entry(entry: Mapping[str, Any], index: int) -> dict[str, Any]:
    """Render one ``gpio`` entry the way the admin UI expects it."""

    pty = mode_to_pty(entry.get("mode"))
    out: dict[str, Any] = {"pty": pty, "name": f"P{index}"}
    if pty == PortType.INPUT:
        out["m"] = _as_int(entry.get("trigger"))
        out["long"] = False
        out["double"] = False
    elif pty == PortType.OUTPUT_SWITCH:
        out["d"] = 1 if _as_int(entry.get("state")) else 0
    elif pty == PortType.PWM:
        out["pwm"] = _clamp(_as_int(entry.get("state")), 0, PWM_MAX)
        out["d"] = out["pwm"]
    elif pty == PortType.ADC:
        # The firmware does not report scaling; the UI still needs the fields.
        out["adc"] = 0
        out["factor"] = 1
        out["offset"] = 0
    elif pty == PortType.DIGITAL_SENSOR:
        out["m"] = 0
        out["d"] = _as_int(entry.get("sensorType"))
    return out


def describe_config(document: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Render every ``gpio`` entry of ``document`` as admin descriptors."""

    config = load_config_document(document)
    return [
        describe_gpio_entry(entry, index) for index, entry in enumerate(config.gpio)
    ]
