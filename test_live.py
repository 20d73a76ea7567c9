"""Live test: watch /ws/occupancy, scan in and out on /ws/scan, see counts pushed in real time."""

import asyncio
import json
import os

import websockets


HOST = os.environ.get("PRESENCE_LIVE_HOST", "127.0.0.1:8000")
SCAN_URI = f"ws://{HOST}/ws/scan?user_id=live-tester&location=ookayama"
DASHBOARD_URI = f"ws://{HOST}/ws/occupancy"


async def dashboard_listener(ready_event: asyncio.Event):
    """Connect to /ws/occupancy and print every snapshot the server pushes."""
    async with websockets.connect(DASHBOARD_URI) as ws:
        print("[DASHBOARD] Connected — waiting for occupancy pushes...\n")
        ready_event.set()

        while True:
            data = json.loads(await ws.recv())
            print("=" * 70)
            print(f"[DASHBOARD] {data.get('taken_at')}  total={data.get('total')}")
            for loc, info in data.get("locations", {}).items():
                print(f"  {loc:<12} {info['count']:>3}  ({info['crowd_level']})")
            print("=" * 70)
            print()


async def scan_codes():
    """Check in, send a duplicate frame, then check out."""
    async with websockets.connect(SCAN_URI) as ws:
        for code, pause in [("gym_check_in", 0.2), ("gym_check_in", 2.5), ("gym_check_out", 0)]:
            await ws.send(json.dumps({"decoded": code}))
            resp = json.loads(await ws.recv())
            if resp["status"] == "accepted":
                presence = resp["presence"]
                print(
                    f"[SCAN] {code} -> {presence['status']} at {resp['location']}"
                    f" (duration={resp.get('duration_minutes')}, occupancy={resp.get('occupancy')})"
                )
            elif resp["status"] == "ignored":
                print(f"[SCAN] {code} -> ignored (duplicate frame)")
            else:
                print(f"[SCAN] {code} -> error {resp['code']}: {resp['detail']}")
            await asyncio.sleep(pause)


async def main():
    print("Connecting to occupancy WebSocket...")
    ready = asyncio.Event()

    listener_task = asyncio.create_task(dashboard_listener(ready))
    await ready.wait()

    print("\nScanning...\n")
    await scan_codes()

    await asyncio.sleep(2)
    listener_task.cancel()
    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
