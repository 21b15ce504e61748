"""Static port and sensor tables of a MegaESP board."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PortMode(str, Enum):
    """Function of a physical port as exposed in the state tree."""

    OUTPUT = "output"
    PWM = "pwm"
    INPUT = "input"
    ANALOG = "analog"


@dataclass(frozen=True, slots=True)
class PortDefinition:
    """A physical port; ``index`` is its position in the ``cmd=all`` reply."""

    index: int
    key: str
    label: str
    mode: PortMode


@dataclass(frozen=True, slots=True)
class Metric:
    """A single field reported by a virtual sensor port.

    ``decimals`` of ``None`` marks a text metric that is published verbatim.
    """

    wire_field: str
    id: str
    role: str
    unit: str = ""
    decimals: int | None = 1

    @property
    def is_text(self) -> bool:
        """Return True when the metric carries text instead of a number."""

        return self.decimals is None


@dataclass(frozen=True, slots=True)
class SensorDefinition:
    """An I2C device reachable through a virtual port."""

    virtual_port: int
    key: str
    label: str
    metrics: tuple[Metric, ...]


def _port(index: int, mode: PortMode) -> PortDefinition:
    return PortDefinition(index=index, key=f"p{index}", label=f"P{index}", mode=mode)


PORT_DEFINITIONS: tuple[PortDefinition, ...] = (
    _port(0, PortMode.OUTPUT),
    _port(1, PortMode.OUTPUT),
    _port(2, PortMode.PWM),
    _port(3, PortMode.OUTPUT),
    _port(4, PortMode.OUTPUT),
    _port(5, PortMode.PWM),
    _port(6, PortMode.OUTPUT),
    _port(7, PortMode.INPUT),
    _port(8, PortMode.INPUT),
    _port(9, PortMode.ANALOG),
)

_TEMPERATURE = "value.temperature"
_HUMIDITY = "value.humidity"
_PRESSURE = "value.pressure"

I2C_SENSORS: tuple[SensorDefinition, ...] = (
    SensorDefinition(
        10,
        "bme280",
        "BME280",
        (
            Metric("bme_t", "temperature", _TEMPERATURE, "°C"),
            Metric("bme_h", "humidity", _HUMIDITY, "%"),
            Metric("bme_p", "pressure", _PRESSURE, "hPa"),
        ),
    ),
    SensorDefinition(
        11,
        "bmp180",
        "BMP180",
        (
            Metric("bmp_t", "temperature", _TEMPERATURE, "°C"),
            Metric("bmp_p", "pressure", _PRESSURE, "hPa"),
        ),
    ),
    SensorDefinition(
        12,
        "bh1750",
        "BH1750",
        (Metric("bh", "illuminance", "value.brightness", "lx"),),
    ),
    SensorDefinition(
        13,
        "sht31",
        "SHT31",
        (
            Metric("sht_t", "temperature", _TEMPERATURE, "°C"),
            Metric("sht_h", "humidity", _HUMIDITY, "%"),
        ),
    ),
    SensorDefinition(
        14,
        "sht21",
        "SHT21",
        (
            Metric("sht21_t", "temperature", _TEMPERATURE, "°C"),
            Metric("sht21_h", "humidity", _HUMIDITY, "%"),
        ),
    ),
    SensorDefinition(
        15,
        "ina219",
        "INA219",
        (
            Metric("ina_v", "voltage", "value.voltage", "V", 2),
            Metric("ina_i", "current", "value.current", "mA"),
        ),
    ),
    SensorDefinition(
        16,
        "rtc",
        "RTC",
        (Metric("rtc", "time", "text", decimals=None),),
    ),
    SensorDefinition(
        17,
        "cjmc8128",
        "CJMCU-8128",
        (
            Metric("cjmc_co2", "co2", "value.co2", "ppm", 0),
            Metric("cjmc_tvoc", "tvoc", "value.tvoc", "ppb", 0),
            Metric("cjmc_temp", "temperature", _TEMPERATURE, "°C"),
            Metric("cjmc_hum", "humidity", _HUMIDITY, "%"),
        ),
    ),
    SensorDefinition(
        18,
        "mcp23017",
        "MCP23017",
        (
            Metric("mcp_gpio", "gpio", "text", decimals=None),
            Metric("mcp_gpioa", "porta", "value", decimals=0),
            Metric("mcp_gpiob", "portb", "value", decimals=0),
        ),
    ),
    SensorDefinition(
        19,
        "lcd",
        "PCF8574 LCD",
        (
            Metric("lcd_line1", "line1", "text", decimals=None),
            Metric("lcd_line2", "line2", "text", decimals=None),
        ),
    ),
    SensorDefinition(
        20,
        "ws281x",
        "WS281x",
        (
            Metric("ws_r", "red", "value", decimals=0),
            Metric("ws_g", "green", "value", decimals=0),
            Metric("ws_b", "blue", "value", decimals=0),
        ),
    ),
)

