"""Constants for the MegaESP bridge."""

from datetime import timedelta

DOMAIN = "megaesp"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 80
DEFAULT_PASSWORD = "sec"

DEFAULT_POLL_INTERVAL = timedelta(seconds=10)
MIN_POLL_INTERVAL = timedelta(seconds=3)

DEFAULT_TIMEOUT = 5.0
CONFIG_WRITE_TIMEOUT = 10.0

# 1-Wire bus is read through this virtual port of the classic API.
DEFAULT_ONEWIRE_PORT = 3

CONNECTION_STATE = "info.connection"
