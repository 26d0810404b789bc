"""Headless dashboard: sync with the state service and print every change.

Usage: python scripts/watch_dashboard.py [status_url]
"""

import asyncio
import json
import sys

from libs.car_state import CarState, diff_states
from libs.log import setup_logging
from services.dashboard_client.core import open_dashboard


async def _watch(status_url=None) -> None:
    async with open_dashboard(status_url) as bridge:
        def on_change(before: CarState, after: CarState) -> None:
            print(json.dumps(diff_states(before, after), ensure_ascii=False), flush=True)

        bridge.store.subscribe(on_change)
        print("watching", bridge.sync.remote.status_url, "- Ctrl+C to stop", flush=True)
        while True:
            await asyncio.sleep(1)


def main() -> None:
    setup_logging()
    try:
        asyncio.run(_watch(sys.argv[1] if len(sys.argv) > 1 else None))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
