"""Tests for the MegaESP HTTP transport."""

from __future__ import annotations

import json

import httpx
import pytest

from megaesp.transport import (
    HttpError,
    MegaEspError,
    MegaEspTransport,
    NetworkError,
    RequestTimeout,
    build_query,
    parse_host,
)


@pytest.mark.parametrize(
    ("address", "expected"),
    [
        ("192.168.0.14", ("192.168.0.14", 80)),
        ("192.168.0.14:8080", ("192.168.0.14", 8080)),
        ("http://mega.local:81/", ("mega.local", 81)),
        ("  10.0.0.2  ", ("10.0.0.2", 80)),
        ("", ("127.0.0.1", 80)),
        (None, ("127.0.0.1", 80)),
    ],
)
def test_parse_host(address: str | None, expected: tuple[str, int]) -> None:
    """Bare addresses, ports and full URLs are accepted."""

    assert parse_host(address) == expected


def test_build_query_encodes_and_skips_none() -> None:
    """Values are URL-encoded and ``None`` parameters are left out."""

    query = build_query({"lcd": "send", "row": 0, "col": None, "text": "Hi there&1"})
    assert query == "lcd=send&row=0&text=Hi%20there%261"


def test_base_url_hides_default_port() -> None:
    """The default HTTP port is not written into the URL."""

    assert MegaEspTransport("mega", 80, "sec").base_url == "http://mega"
    assert MegaEspTransport("mega", 8080, "sec").base_url == "http://mega:8080"


@pytest.mark.asyncio
async def test_get_all_uses_password_path(device, transport) -> None:
    """Classic calls carry the secret as the first path segment."""

    device.routes["cmd=all"] = "  ON;OFF;128 \n"

    assert await transport.async_get_all() == "ON;OFF;128"
    request = device.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/sec/"
    assert request.url.host == "192.168.0.14"


@pytest.mark.asyncio
async def test_classic_calls_build_expected_queries(device, transport) -> None:
    """Port reads, writes and counter resets hit the documented queries."""

    await transport.async_get_port(10)
    await transport.async_set_port(2, 128)
    await transport.async_set_counter(7, 0)
    await transport.async_sec({"oled": "invert", "v": 1})

    assert device.calls == [
        "pt=10&cmd=get",
        "cmd=2:128",
        "pt=7&cnt=0",
        "oled=invert&v=1",
    ]
    assert device.requests[3].url.path == "/sec/"


@pytest.mark.asyncio
async def test_password_is_url_encoded(device) -> None:
    """Secrets with reserved characters stay inside one path segment."""

    transport = MegaEspTransport(
        "192.168.0.14", 80, "a/b c", client=device.client()
    )
    await transport.async_get_all()

    assert device.requests[0].url.raw_path.startswith(b"/a%2Fb%20c/")


@pytest.mark.asyncio
async def test_non_success_status_raises_http_error(device, transport) -> None:
    """Any status other than 200 is reported with its body."""

    device.routes["cmd=all"] = (401, "Unauthorized")

    with pytest.raises(HttpError) as excinfo:
        await transport.async_get_all()

    assert excinfo.value.status_code == 401
    assert excinfo.value.body == "Unauthorized"
    assert isinstance(excinfo.value, MegaEspError)


@pytest.mark.asyncio
async def test_timeout_raises_request_timeout(device, transport) -> None:
    """httpx timeouts surface as :class:`RequestTimeout`."""

    device.routes["pt=10&cmd=get"] = httpx.ConnectTimeout("timed out")

    with pytest.raises(RequestTimeout) as excinfo:
        await transport.async_get_port(10)

    assert isinstance(excinfo.value, TimeoutError)
    assert "timeout" in str(excinfo.value).lower()


@pytest.mark.asyncio
async def test_connection_failure_raises_network_error(device, transport) -> None:
    """Refused connections surface as :class:`NetworkError`."""

    device.routes["cmd=all"] = httpx.ConnectError("connection refused")

    with pytest.raises(NetworkError):
        await transport.async_get_all()


@pytest.mark.asyncio
async def test_get_config_decodes_json(device, transport) -> None:
    """The configuration document is fetched unauthenticated and decoded."""

    device.routes["GET /config.json"] = json.dumps({"gpio": [{"mode": 1}]})

    assert await transport.async_get_config() == {"gpio": [{"mode": 1}]}


@pytest.mark.asyncio
async def test_post_config_sends_json_with_length(device, transport) -> None:
    """Uploads carry the JSON content type and an exact content length."""

    document = {"gpio": [{"mode": 1, "state": 0}], "net": {"ip": "10.0.0.5"}}
    device.routes["POST /config.json"] = "OK"

    assert await transport.async_post_config(document) == "OK"

    request = device.requests[0]
    body = request.content
    assert request.method == "POST"
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["Content-Length"] == str(len(body))
    assert json.loads(body) == document


@pytest.mark.asyncio
async def test_with_endpoint_shares_client(device, transport) -> None:
    """Per-message overrides talk to another device over the same client."""

    other = transport.with_endpoint("10.0.0.9", 8080, "other")
    await other.async_get_all()

    assert other.http_client is transport.http_client
    request = device.requests[0]
    assert request.url.host == "10.0.0.9"
    assert request.url.port == 8080
    assert request.url.path == "/other/"


@pytest.mark.asyncio
async def test_close_keeps_injected_client_open(device) -> None:
    """Only clients created by the transport are closed by it."""

    client = device.client()
    transport = MegaEspTransport("192.168.0.14", client=client)
    await transport.async_close()
    assert not client.is_closed

    owned = MegaEspTransport("192.168.0.14")
    await owned.async_close()
    assert owned.http_client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_closed_client_raises_network_error(device, transport) -> None:
    """Requests after shutdown fail with a device error, not a RuntimeError."""

    await transport.http_client.aclose()

    with pytest.raises(NetworkError):
        await transport.async_get_all()
    assert device.requests == []
