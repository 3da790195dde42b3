#!/usr/bin/env python3
"""
AdOps Analytics - Main Entry Point
==================================

Usage:
    python main.py --mode api                          # Serve the mock analytics API
    python main.py --mode watch --resource telemetry   # Poll a resource and log each sync
    python main.py --mode sample --resource pacing     # Print one generated payload
    python main.py --help                              # Show help
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict, replace
from typing import Optional

from dotenv import load_dotenv

from adops.core.config import Config
from adops.core.staleness import format_sync_label
from adops.refresh.coordinator import RefreshCoordinator
from adops.refresh.events import RefreshEventKind
from adops.refresh.policy import RefreshOptions
from adops.sources import gam_provider
from adops.sources.client import RESOURCES, AdOpsClient
from adops.utils.logger import get_logger, setup_logging

log = get_logger(__name__)

SAMPLERS = {
    "creatives": gam_provider.get_creatives,
    "telemetry": gam_provider.get_telemetry,
    "geos": lambda count=None: gam_provider.get_geo_stats(),
    "pacing": gam_provider.get_pacing,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="AdOps Analytics backend")
    parser.add_argument("--mode", choices=["api", "watch", "sample"], default="api")
    parser.add_argument("--resource", choices=sorted(RESOURCES), default="telemetry")
    parser.add_argument("--count", type=int, default=None, help="Records per request")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between refreshes")
    parser.add_argument("--duration", type=float, default=None, help="Stop watching after N seconds")
    parser.add_argument("--base-url", default=None, help="API base URL for watch mode")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    return parser


def run_api(host: Optional[str], port: Optional[int]) -> None:
    import uvicorn

    uvicorn.run(
        "adops.api.app:app",
        host=host or Config.get("api", "host", default="0.0.0.0"),
        port=port or int(Config.get("api", "port", default=8000)),
        log_level="info",
    )


async def watch(resource: str, *, count: Optional[int], interval: Optional[float], duration: Optional[float], base_url: Optional[str]) -> int:
    """Poll ``resource`` through a RefreshCoordinator, logging each outcome."""
    options = RefreshOptions.from_config()
    if interval is not None:
        options = replace(options, interval=interval)

    async with AdOpsClient(base_url) as client:
        coordinator = RefreshCoordinator.from_options(client.fetch_operation(resource, count), options, name=resource)
        async with coordinator:
            subscription = coordinator.subscribe()

            async def report() -> None:
                async for event in subscription:
                    if event.kind is RefreshEventKind.UPDATED:
                        meta = event.data.get("meta", {}) if isinstance(event.data, dict) else {}
                        log.info(f"[{resource}] synced {meta.get('total', '?')} records at {meta.get('timestamp', '?')}")
                    elif event.kind is RefreshEventKind.FAILED:
                        log.error(f"[{resource}] {event.error}")
                    elif event.kind is RefreshEventKind.STALENESS and event.seconds_ago and event.seconds_ago % 10 == 0:
                        log.info(f"[{resource}] Synced {format_sync_label(event.seconds_ago)}")

            reporter = asyncio.create_task(report())
            try:
                if duration is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(duration)
            finally:
                subscription.close()
                await reporter

        return 0 if coordinator.error is None else 1


def sample(resource: str, count: Optional[int]) -> None:
    sampler = SAMPLERS[resource]
    records = sampler(count) if count is not None else sampler()
    print(json.dumps([asdict(r) for r in records], indent=2))


def main(argv=None) -> int:
    load_dotenv()
    setup_logging()
    args = build_parser().parse_args(argv)

    if args.mode == "api":
        run_api(args.host, args.port)
        return 0

    if args.mode == "sample":
        sample(args.resource, args.count)
        return 0

    try:
        return asyncio.run(
            watch(
                args.resource,
                count=args.count,
                interval=args.interval,
                duration=args.duration,
                base_url=args.base_url,
            )
        )
    except KeyboardInterrupt:
        log.info("Watch interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
