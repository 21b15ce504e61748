"""Tests for the bridge coordinator lifecycle."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from megaesp.config import MegaEspConfig
from megaesp.const import CONNECTION_STATE
from megaesp.coordinator import MegaEspCoordinator
from megaesp.definitions import I2C_SENSORS


@pytest.mark.asyncio
async def test_start_creates_tree_and_polls_once(device, store, config) -> None:
    """Start-up registers objects, polls in order and reports the connection."""

    device.routes["cmd=all"] = "ON;OFF;10;OFF;OFF;0;OFF;OFF/2;OFF;100"
    device.routes["pt=3&cmd=get"] = "Outside=4.5"
    device.routes["pt=10&cmd=get"] = "bme_t=20.04;bme_h=40;bme_p=1000"
    coordinator = MegaEspCoordinator(store, config, client=device.client())

    await coordinator.async_start()
    try:
        assert coordinator.connected is True
        assert store.get_state(CONNECTION_STATE).value is True
        assert device.calls[:2] == ["cmd=all", "pt=3&cmd=get"]
        assert sorted(device.calls[2:]) == sorted(
            f"pt={sensor.virtual_port}&cmd=get" for sensor in I2C_SENSORS
        )
        assert "info.connection" in store.objects
        assert store.get_state("ports.p7.counter").value == 2
        assert store.get_state("sensors.onewire.outside").value == 4.5
        assert store.get_state("sensors.i2c.bme280.temperature").value == 20.0
        assert store.get_state("sensors.i2c.bmp180.temperature").value is None
        assert store.get_state("display.oled.size").value == 1
    finally:
        await coordinator.async_stop()


@pytest.mark.asyncio
async def test_write_intents_reach_the_device(device, store, config) -> None:
    """Unacknowledged writes are dispatched and echoed once."""

    coordinator = MegaEspCoordinator(store, config, client=device.client())
    await coordinator.async_start()
    device.requests.clear()

    await store.async_write("ports.p0.state", True, ack=False)
    await store.async_write("display.lcd.clear", True, ack=False)
    await store.async_write("sensors.i2c.bme280.temperature", 1, ack=False)
    await store.async_block_till_done()

    assert sorted(device.calls) == ["cmd=0:1", "lcd=1&cl=1"]
    assert store.get_state("ports.p0.state").ack is True
    assert store.get_state("display.lcd.clear").value is False

    await coordinator.async_stop()


@pytest.mark.asyncio
async def test_stop_unsubscribes_and_disconnects(device, store, config) -> None:
    """After stopping no intent is dispatched and the connection is down."""

    client = device.client()
    coordinator = MegaEspCoordinator(store, config, client=client)
    await coordinator.async_start()
    await coordinator.async_stop()
    device.requests.clear()

    await store.async_write("ports.p0.state", True, ack=False)
    await store.async_block_till_done()

    assert device.requests == []
    assert coordinator.connected is False
    assert store.get_state(CONNECTION_STATE).value is False
    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_refresh_timer_repeats_until_stopped(device, store) -> None:
    """Poll cycles recur on the configured interval."""

    config = MegaEspConfig(
        host="192.168.0.14",
        port=80,
        password="sec",
        poll_interval=timedelta(milliseconds=20),
    )
    coordinator = MegaEspCoordinator(store, config, client=device.client())

    await coordinator.async_start()
    await asyncio.sleep(0.15)
    await coordinator.async_stop()

    polls = device.calls.count("cmd=all")
    assert polls >= 3
    await asyncio.sleep(0.06)
    assert device.calls.count("cmd=all") == polls


@pytest.mark.asyncio
async def test_failed_polls_keep_the_bridge_running(device, store, config) -> None:
    """Device errors during start-up polling are logged, not raised."""

    device.routes["cmd=all"] = (503, "")
    device.routes["pt=3&cmd=get"] = (503, "")
    coordinator = MegaEspCoordinator(store, config, client=device.client())

    await coordinator.async_start()

    assert coordinator.connected is True
    assert store.get_state("ports.p0.state") is None
    await coordinator.async_stop()


@pytest.mark.asyncio
async def test_admin_messages_are_forwarded(device, store, config) -> None:
    """Admin commands are answered through the coordinator."""

    coordinator = MegaEspCoordinator(store, config, client=device.client())

    assert await coordinator.async_handle_message("discover") == {"devices": []}
    await coordinator.async_stop()
