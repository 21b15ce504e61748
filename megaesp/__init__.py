"""Bridge between a home-automation state tree and MegaESP boards."""

from __future__ import annotations

from .config import CONFIG_SCHEMA, MegaEspConfig
from .const import DOMAIN
from .coordinator import MegaEspCoordinator
from .store import InMemoryStateStore, StateChange, StateObject, StateStore
from .transport import (
    HttpError,
    MegaEspError,
    MegaEspTransport,
    NetworkError,
    RequestTimeout,
)

__all__ = [
    "CONFIG_SCHEMA",
    "DOMAIN",
    "HttpError",
    "InMemoryStateStore",
    "MegaEspConfig",
    "MegaEspCoordinator",
    "MegaEspError",
    "MegaEspTransport",
    "NetworkError",
    "RequestTimeout",
    "StateChange",
    "StateObject",
    "StateStore",
]
