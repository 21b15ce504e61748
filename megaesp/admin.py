"""Administrative commands sent by the configuration UI."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .config import MegaEspConfig, resolve_address, resolve_password
from .modes import apply_ui_descriptors, describe_config
from .transport import MegaEspError, MegaEspTransport, parse_host

_LOGGER = logging.getLogger(__name__)

COMMAND_DISCOVER = "discover"
COMMAND_DETECT_PORTS = "detectPorts"
COMMAND_WRITE_CONFIG = "writeConfig"


class AdminHandler:
    """Answer ``discover``, ``detectPorts`` and ``writeConfig`` messages.

    Messages may name another device through ``ip``/``password``; the
    request then goes there instead of the configured endpoint.
    """

    def __init__(self, transport: MegaEspTransport, config: MegaEspConfig) -> None:
        """Bind the bridge transport and configuration."""

        self._transport = transport
        self._config = config

    async def async_handle(
        self, command: str, message: Mapping[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Run ``command`` and return the response payload for the UI."""

        message = message or {}
        try:
            if command == COMMAND_DISCOVER:
                # Devices are entered by address; there is no network scan.
                return {"devices": []}
            if command == COMMAND_DETECT_PORTS:
                return await self.async_detect_ports(message)
            if command == COMMAND_WRITE_CONFIG:
                return await self.async_write_config(message)
        except (MegaEspError, ValueError) as err:
            _LOGGER.warning("%s failed: %s", command, err)
            return {"error": str(err)}
        _LOGGER.debug("Ignoring unknown admin command %s", command)
        return None

    def _target(self, message: Mapping[str, Any]) -> MegaEspTransport:
        address = resolve_address(message)
        password = message.get("password") or message.get("sec")
        if not address and not password:
            return self._transport
        if address:
            host, port = parse_host(address)
        else:
            host, port = self._config.host, self._config.port
        return self._transport.with_endpoint(
            host,
            port,
            resolve_password(message) if password else self._config.password,
        )

    async def async_detect_ports(self, message: Mapping[str, Any]) -> dict[str, Any]:
        """Return the raw port status and the configured ports as descriptors."""

        transport = self._target(message)
        response = ""
        try:
            response = await transport.async_get_all()
        except MegaEspError as err:
            _LOGGER.debug("detectPorts: cmd=all failed: %s", err)

        ports: list[dict[str, Any]] = []
        try:
            document = await transport.async_get_config()
            ports = describe_config(document)
        except (MegaEspError, ValueError) as err:
            _LOGGER.warning("detectPorts: /config.json failed: %s", err)
        return {"response": response, "ports": ports}

    async def async_write_config(self, message: Mapping[str, Any]) -> dict[str, Any]:
        """Merge the UI port table into the device configuration and upload it."""

        transport = self._target(message)
        descriptors = message.get("ports")
        if descriptors is None:
            descriptors = []
        document = await transport.async_get_config()
        merged = apply_ui_descriptors(document, descriptors)

        upload: dict[str, Any] = {"gpio": merged["gpio"]}
        settings = message.get("config")
        if isinstance(settings, Mapping) and (
            "eip" in settings or "pwd" in settings
        ):
            # The firmware cannot change its password through config.json.
            upload["net"] = {}
            if settings.get("eip"):
                upload["net"]["ip"] = str(settings["eip"])

        _LOGGER.info(
            "Writing configuration of %d ports to %s",
            len(upload["gpio"]),
            transport.host,
        )
        _LOGGER.debug("Configuration upload: %s", json.dumps(upload))
        await transport.async_post_config(upload)
        return {"ok": True}
