#!/usr/bin/env python3
"""Field reporter observer simulator.

Drives a running local reporter service the way a phone would: captures a
few stealth reports at the scene, then walks the observer away while
pushing location fixes, flips connectivity and triggers syncs.

Usage:
    # 3 captures near Accra, walk 1.5 km at 1.4 m/s, report every 10 s
    python -m tools.simulator.simulate --server http://localhost:8000 --captures 3

    # Faster walk, fewer fixes, start offline for the first 60 s
    python -m tools.simulator.simulate --speed 3.0 --fix-interval 30 --offline-for 60
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
from dataclasses import dataclass

import httpx

CATEGORIES = ["Illegal Mining", "Water Pollution", "Forest Clearing", "Heavy Machinery"]


@dataclass
class SimObserver:
    lat: float
    lon: float
    bearing: float
    speed_mps: float
    walked_m: float = 0.0
    fixes_sent: int = 0
    errors: int = 0


def make_capture(observer: SimObserver, blur_radius_m: int) -> dict:
    """Create a single capture JSON payload at the observer's position."""
    return {
        "category": random.choice(CATEGORIES),
        "description": f"Simulated observation #{random.randint(1000, 9999)}",
        "location": {
            "lat": round(observer.lat, 6),
            "lon": round(observer.lon, 6),
            "accuracy_m": random.randint(4, 20),
        },
        "blur_radius_m": blur_radius_m,
        "stealth": True,
        "anonymous": True,
    }


def move_observer(observer: SimObserver, dt_seconds: float) -> None:
    """Walk along the current bearing, drifting a little."""
    observer.bearing = (observer.bearing + random.uniform(-10, 10)) % 360
    distance_m = observer.speed_mps * dt_seconds
    bearing_rad = math.radians(observer.bearing)

    # Approximate: 1 degree latitude ~ 111,000 m
    dlat = (distance_m * math.cos(bearing_rad)) / 111_000
    dlon = (distance_m * math.sin(bearing_rad)) / (111_000 * math.cos(math.radians(observer.lat)))

    observer.lat += dlat
    observer.lon += dlon
    observer.walked_m += distance_m


async def post(client: httpx.AsyncClient, url: str, payload: dict | None = None) -> httpx.Response:
    return await client.post(
        url,
        content=json.dumps(payload or {}),
        headers={"content-type": "application/json"},
    )


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    center_lat, center_lon = args.center
    observer = SimObserver(
        lat=center_lat,
        lon=center_lon,
        bearing=random.uniform(0, 360),
        speed_mps=args.speed,
    )
    api = f"{args.server}/api/v1"

    print(f"Starting simulation: {args.captures} captures, walking {args.distance} m")
    print(f"  Scene: {center_lat:.4f}, {center_lon:.4f}")
    print(f"  Speed: {args.speed} m/s, fix every {args.fix_interval}s")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()
    async with httpx.AsyncClient(timeout=10.0) as client:
        await post(client, f"{api}/connectivity", {"online": False})

        report_ids = []
        for _ in range(args.captures):
            resp = await post(client, f"{api}/reports", make_capture(observer, args.blur))
            if resp.status_code == 201:
                report_ids.append(resp.json()["id"])
            else:
                observer.errors += 1
        print(f"Captured {len(report_ids)} reports at the scene")

        online = False
        while observer.walked_m < args.distance:
            await asyncio.sleep(args.fix_interval / args.time_scale)
            move_observer(observer, args.fix_interval)
            try:
                resp = await post(client, f"{api}/location",
                                  {"lat": observer.lat, "lon": observer.lon, "accuracy_m": 8})
                if resp.status_code == 200:
                    observer.fixes_sent += 1
                else:
                    observer.errors += 1
            except httpx.RequestError:
                observer.errors += 1

            elapsed = time.monotonic() - start
            if not online and elapsed * args.time_scale >= args.offline_for:
                await post(client, f"{api}/connectivity", {"online": True})
                online = True
                print(f"  [{observer.walked_m:7.0f} m] back online")

            resp = await post(client, f"{api}/sync")
            if resp.status_code == 200 and resp.json()["submitted"]:
                print(f"  [{observer.walked_m:7.0f} m] submitted {resp.json()['submitted']}")

        for report_id in report_ids:
            resp = await client.get(f"{api}/reports/{report_id}")
            if resp.status_code == 200:
                data = resp.json()
                print(f"  {report_id[:8]}  {data['status']:<10} ready={data['safe_upload']['ready']}")

        elapsed = time.monotonic() - start
        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Walked: {observer.walked_m:.0f} m")
        print(f"  Fixes sent: {observer.fixes_sent}")
        print(f"  Errors: {observer.errors}")

        # Check service stats
        try:
            resp = await client.get(f"{api}/stats")
            if resp.status_code == 200:
                stats = resp.json()
                print(f"\nService stats:")
                print(f"  Reports created: {stats['reports_created']}")
                print(f"  Readiness latched: {stats['ready_latched']}")
                print(f"  Submitted: {stats['reports_submitted']}")
                print(f"  Acknowledged: {stats['reports_acknowledged']}")
                print(f"  Syncs accepted/rejected: {stats['syncs']['accepted']}/{stats['syncs']['rejected']}")
        except httpx.RequestError:
            pass


def main():
    parser = argparse.ArgumentParser(description="Field reporter observer simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Service URL")
    parser.add_argument("--captures", type=int, default=3, help="Reports captured at the scene")
    parser.add_argument("--blur", type=int, default=500, help="Blur radius in meters")
    parser.add_argument("--distance", type=float, default=1500.0, help="Meters to walk away")
    parser.add_argument("--speed", type=float, default=1.4, help="Walking speed in m/s")
    parser.add_argument("--fix-interval", type=float, default=10.0,
                        help="Simulated seconds between location fixes")
    parser.add_argument("--offline-for", type=float, default=0.0,
                        help="Simulated seconds before connectivity returns")
    parser.add_argument("--time-scale", type=float, default=10.0,
                        help="Simulated seconds per wall-clock second")
    parser.add_argument("--center", type=str, default="5.6000,-0.2000",
                        help="Scene lat,lon (default: Accra)")

    args = parser.parse_args()

    # Parse center
    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
