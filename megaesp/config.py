"""Bridge configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

import voluptuous as vol

from .const import (
    DEFAULT_HTTP_PORT,
    DEFAULT_ONEWIRE_PORT,
    DEFAULT_PASSWORD,
    DEFAULT_POLL_INTERVAL,
    MIN_POLL_INTERVAL,
)
from .transport import parse_host


def _poll_interval(value: Any) -> int:
    """Coerce the poll interval in seconds, falling back like the admin form."""

    default = int(DEFAULT_POLL_INTERVAL.total_seconds())
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        seconds = default
    if seconds == 0:
        seconds = default
    return max(int(MIN_POLL_INTERVAL.total_seconds()), seconds)


_OPTIONAL_TEXT = vol.Any(None, str)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional("ip"): _OPTIONAL_TEXT,
        vol.Optional("host"): _OPTIONAL_TEXT,
        vol.Optional("password"): _OPTIONAL_TEXT,
        vol.Optional("sec"): _OPTIONAL_TEXT,
        vol.Optional(
            "pollInterval", default=int(DEFAULT_POLL_INTERVAL.total_seconds())
        ): _poll_interval,
        vol.Optional("onewirePort", default=DEFAULT_ONEWIRE_PORT): vol.All(
            vol.Coerce(int), vol.Range(min=0, max=255)
        ),
    },
    extra=vol.ALLOW_EXTRA,
)


def resolve_address(options: Mapping[str, Any]) -> str | None:
    """Return the device address, preferring ``ip`` over ``host``."""

    return options.get("ip") or options.get("host")


def resolve_password(options: Mapping[str, Any]) -> str:
    """Return the shared secret, preferring ``password`` over ``sec``."""

    return (options.get("password") or options.get("sec") or DEFAULT_PASSWORD).strip()


@dataclass(frozen=True, slots=True)
class MegaEspConfig:
    """Validated runtime options of one bridge instance."""

    host: str
    port: int
    password: str
    poll_interval: timedelta = DEFAULT_POLL_INTERVAL
    onewire_port: int = DEFAULT_ONEWIRE_PORT

    @property
    def base_url(self) -> str:
        """Return the device URL without the secret."""

        if self.port == DEFAULT_HTTP_PORT:
            return f"http://{self.host}"
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> MegaEspConfig:
        """Validate adapter-style ``options``; raises ``vol.Invalid``."""

        data = CONFIG_SCHEMA(dict(options))
        host, port = parse_host(resolve_address(data))
        return cls(
            host=host,
            port=port,
            password=resolve_password(data),
            poll_interval=timedelta(seconds=data["pollInterval"]),
            onewire_port=data["onewirePort"],
        )
