"""HTTP transport for the MegaESP classic and JSON APIs."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlsplit

import httpx

from .const import (
    CONFIG_WRITE_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_HTTP_PORT,
    DEFAULT_PASSWORD,
    DEFAULT_TIMEOUT,
)

_LOGGER = logging.getLogger(__name__)

CONFIG_PATH = "/config.json"


class MegaEspError(Exception):
    """Base class for errors raised while talking to the device."""


class HttpError(MegaEspError):
    """Raised when the device answers with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        """Keep the status and body so callers can inspect them."""

        super().__init__(f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class RequestTimeout(MegaEspError, TimeoutError):
    """Raised when the device does not answer within the timeout."""


class NetworkError(MegaEspError):
    """Raised for connection level failures (refused, reset, DNS...)."""


def parse_host(address: str | None) -> tuple[str, int]:
    """Split ``address`` into host and port, accepting bare ``host[:port]``."""

    if not address or not isinstance(address, str):
        return DEFAULT_HOST, DEFAULT_HTTP_PORT
    address = address.strip()
    if not address.startswith("http"):
        address = f"http://{address}"
    parts = urlsplit(address)
    host = parts.hostname or DEFAULT_HOST
    try:
        port = parts.port or DEFAULT_HTTP_PORT
    except ValueError:
        port = DEFAULT_HTTP_PORT
    return host, port


def build_query(params: Mapping[str, Any]) -> str:
    """Encode ``params`` as a query string, skipping ``None`` values."""

    return "&".join(
        f"{quote(str(key), safe='')}={quote(str(value), safe='')}"
        for key, value in params.items()
        if value is not None
    )


class MegaEspTransport:
    """Issue requests against a single device endpoint.

    The shared secret travels as the first path segment of every classic API
    call, the JSON configuration endpoints are not protected. Requests are
    never retried here; pollers and the dispatcher decide what a failure means.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_HTTP_PORT,
        password: str = DEFAULT_PASSWORD,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Bind the device endpoint and an optional shared HTTP client."""

        self.host = host
        self.port = port
        self.password = password
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient()

    @property
    def base_url(self) -> str:
        """Return the scheme and authority of the device endpoint."""

        if self.port == DEFAULT_HTTP_PORT:
            return f"http://{self.host}"
        return f"http://{self.host}:{self.port}"

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Expose the underlying HTTP client."""

        return self._client

    def with_endpoint(
        self, host: str, port: int, password: str
    ) -> MegaEspTransport:
        """Return a transport for another endpoint sharing this HTTP client."""

        return MegaEspTransport(
            host, port, password, client=self._client, timeout=self._timeout
        )

    async def async_request(
        self,
        path: str,
        *,
        timeout: float | None = None,
        method: str = "GET",
        body: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Perform a request and return the trimmed response body."""

        if self._client.is_closed:
            raise NetworkError(f"Request to {path} failed: HTTP client is closed")
        url = f"{self.base_url}{path}"
        request_timeout = self._timeout if timeout is None else timeout
        try:
            response = await self._client.request(
                method,
                url,
                content=body,
                headers=dict(headers) if headers else None,
                timeout=request_timeout,
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeout(f"Request timeout for {path}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Request to {path} failed: {exc}") from exc

        text = response.text or ""
        if response.status_code != 200:
            raise HttpError(response.status_code, text)
        return text.strip()

    def _secured(self, query: str) -> str:
        return f"/{quote(self.password, safe='')}/?{query}"

    async def async_get_all(self) -> str:
        """Return the positional ``;``-separated state of all ports."""

        return await self.async_request(self._secured("cmd=all"))

    async def async_get_port(self, port: int) -> str:
        """Return the ``key=value`` payload of a virtual sensor port."""

        return await self.async_request(self._secured(f"pt={port}&cmd=get"))

    async def async_set_port(self, index: int, value: int) -> str:
        """Drive an output or PWM port."""

        return await self.async_request(self._secured(f"cmd={index}:{value}"))

    async def async_set_counter(self, index: int, value: int) -> str:
        """Overwrite the pulse counter of an input port."""

        return await self.async_request(self._secured(f"pt={index}&cnt={value}"))

    async def async_sec(self, params: Mapping[str, Any]) -> str:
        """Call the display sub-protocol with ``params``."""

        return await self.async_request(f"/sec/?{build_query(params)}")

    async def async_get_config(self) -> dict[str, Any]:
        """Fetch and decode the device configuration document."""

        payload = await self.async_request(CONFIG_PATH)
        return json.loads(payload)

    async def async_post_config(self, document: Mapping[str, Any]) -> str:
        """Upload a configuration document."""

        body = json.dumps(document).encode("utf-8")
        _LOGGER.debug("Posting configuration to %s (%d bytes)", self.host, len(body))
        return await self.async_request(
            CONFIG_PATH,
            timeout=CONFIG_WRITE_TIMEOUT,
            method="POST",
            body=body,
            headers={
                "Content-Type": "application/json",
                "Content-Length": str(len(body)),
            },
        )

    async def async_close(self) -> None:
        """Close the HTTP client when this transport created it."""

        if self._owns_client:
            await self._client.aclose()
