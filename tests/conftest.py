"""Pytest configuration for the MegaESP bridge tests."""

from __future__ import annotations

import asyncio
import inspect
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

root_path = Path(__file__).resolve().parent.parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

from megaesp.config import MegaEspConfig  # noqa: E402
from megaesp.store import InMemoryStateStore  # noqa: E402
from megaesp.transport import MegaEspTransport  # noqa: E402

Route = str | int | tuple[int, str] | Exception | Callable[[httpx.Request], Any]


class FakeDevice:
    """Answer MegaESP requests from a route table and record every call.

    Classic API calls are keyed by their query string (``cmd=all``,
    ``pt=10&cmd=get``); plain endpoints by ``"<METHOD> <path>"``.
    Unknown routes answer ``200`` with an empty body.
    """

    def __init__(self) -> None:
        """Initialise an empty route table."""

        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    @staticmethod
    def key_for(request: httpx.Request) -> str:
        """Return the route key of ``request``."""

        query = request.url.query.decode()
        if query:
            return query
        return f"{request.method} {request.url.path}"

    @property
    def calls(self) -> list[str]:
        """Route keys of every request received so far."""

        return [self.key_for(request) for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        """Resolve ``request`` against the route table."""

        self.requests.append(request)
        route = self.routes.get(self.key_for(request), "")
        if callable(route) and not isinstance(route, Exception):
            route = route(request)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route, text="")
        if isinstance(route, tuple):
            status, body = route
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=route)

    def client(self) -> httpx.AsyncClient:
        """Return an async client served by this fake."""

        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def device() -> FakeDevice:
    """Provide a fresh fake device."""

    return FakeDevice()


@pytest.fixture
def transport(device: FakeDevice) -> MegaEspTransport:
    """Provide a transport talking to the fake device."""

    return MegaEspTransport("192.168.0.14", 80, "sec", client=device.client())


@pytest.fixture
def store() -> InMemoryStateStore:
    """Provide an empty in-memory state store."""

    return InMemoryStateStore()


@pytest.fixture
def config() -> MegaEspConfig:
    """Provide the configuration used by coordinator level tests."""

    return MegaEspConfig.from_dict({"ip": "192.168.0.14", "password": "sec"})


def pytest_configure(config: pytest.Config) -> None:
    """Register markers used throughout the test suite."""

    config.addinivalue_line(
        "markers", "asyncio: mark coroutine tests to execute via asyncio loop"
    )


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute coroutine tests within a dedicated event loop."""

    test_function = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_function):
        return None

    funcargs = pyfuncitem.funcargs
    testargs = {arg: funcargs[arg] for arg in pyfuncitem._fixtureinfo.argnames}
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_function(**testargs))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True
