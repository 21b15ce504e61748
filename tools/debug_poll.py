"""Run poll cycles against a MegaESP board and dump the resulting state tree."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from megaesp import InMemoryStateStore, MegaEspConfig, MegaEspCoordinator


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Poll a MegaESP board")
    parser.add_argument("address", help="Device address, e.g. 192.168.0.14[:80]")
    parser.add_argument("--password", default="sec", help="Shared secret")
    parser.add_argument(
        "--cycles", type=int, default=1, help="Number of poll cycles to run"
    )
    parser.add_argument(
        "--interval", type=int, default=10, help="Seconds between poll cycles"
    )
    parser.add_argument(
        "--detect", action="store_true", help="Also print the detectPorts answer"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Poll the device ``--cycles`` times and print every published state."""

    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = MegaEspConfig.from_dict(
        {"ip": args.address, "password": args.password, "pollInterval": args.interval}
    )
    store = InMemoryStateStore()
    coordinator = MegaEspCoordinator(store, config)
    await coordinator.async_start()
    try:
        # The first cycle runs during start-up, the rest on the coordinator timer.
        await asyncio.sleep(
            config.poll_interval.total_seconds() * max(0, args.cycles - 1)
        )
        if args.detect:
            answer = await coordinator.async_handle_message("detectPorts")
            print(json.dumps(answer, indent=2))
    finally:
        await coordinator.async_stop()
        await store.async_block_till_done()

    for path, change in sorted(store.states.items()):
        print(f"{path} = {change.value!r}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
