#!/usr/bin/env python3
"""Inspect and exercise the auction notification service.

Loads a vehicle list from a JSON file, binds the backend the current
environment selects, schedules every favourite, and prints the service
info and ledger stats.  The ledger mirror is kept in a JSON file so
repeated runs see each other's state.

Usage
-----
::

    python scripts/notify_diagnostics.py vehicles.json

Options::

    --store FILE        Ledger store file (default: .auctionnotify-store.json)
    --app-name NAME     Host application name (e.g. "Expo Go" for the preview host)
    --dev               Treat the process as a development build
    --test ID           Send the diagnostics test notification for vehicle ID
    --clear             Cancel every notification and empty the ledger
    --json              Output machine-readable JSON
    --verbose, -v       Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from auctionnotify import (  # noqa: E402
    AuctionNotificationService,
    JsonFileKeyValueStore,
    NotifyConfig,
    NotifyPermissionDeniedError,
    PermissionStatus,
)
from auctionnotify.host import LocalNotificationHost  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _load_vehicles(path: Path) -> list[dict[str, Any]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("vehicles", [])
    if not isinstance(data, list):
        raise SystemExit(f"{path}: expected a JSON array of vehicles")
    return [item for item in data if isinstance(item, dict)]


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Schedule auction notifications for a vehicle list and report the service state.",
    )
    parser.add_argument("vehicles", nargs="?", help="JSON file with the vehicle list")
    parser.add_argument("--store", default=".auctionnotify-store.json", help="Ledger store file")
    parser.add_argument("--app-name", help="Host application name")
    parser.add_argument("--dev", action="store_true", help="Treat the process as a development build")
    parser.add_argument("--test", metavar="ID", help="Send the test notification for vehicle ID")
    parser.add_argument("--clear", action="store_true", help="Cancel every notification and empty the ledger")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.app_name is not None:
        overrides["app_name"] = args.app_name
    if args.dev:
        overrides["dev_mode"] = True
    config = NotifyConfig.from_env(**overrides)

    vehicles = _load_vehicles(Path(args.vehicles)) if args.vehicles else []
    host = LocalNotificationHost(permission=PermissionStatus.GRANTED)
    store = JsonFileKeyValueStore(args.store)

    result: dict[str, Any] = {}
    async with AuctionNotificationService(config, store=store, host=host) as service:
        try:
            await service.initialize()
        except NotifyPermissionDeniedError as exc:
            print(f"Notification permission not granted ({exc.status})", file=sys.stderr)
            raise SystemExit(1) from exc

        if args.clear:
            await service.clear_all_notifications()
        elif vehicles:
            result["live"] = await service.schedule_all_favorite_notifications(vehicles)

        if args.test is not None:
            match = next((v for v in vehicles if str(v.get("id")) == args.test), None)
            if match is None:
                print(f"Vehicle {args.test} not found in the vehicle list", file=sys.stderr)
            else:
                result["test_sent"] = await service.send_test_notification(match)

        result["service"] = service.get_service_info().model_dump(mode="json")
        result["stats"] = service.get_notification_stats().model_dump(mode="json")
        result["scheduled"] = [entry.to_store() for entry in service.scheduler.scheduled_notifications()]
        result["delivered"] = [
            {"identifier": item.identifier, "title": item.content.title, "body": item.content.body}
            for item in host.delivered
        ]
    host.close()

    if args.json_mode:
        print(json.dumps(result, indent=2, default=str, ensure_ascii=False))
        return

    info = result["service"]
    stats = result["stats"]
    out: list[str] = [_section("auctionnotify diagnostics")]
    out.append(f"  backend   : {info['service_name']} ({info['variant']})")
    out.append(f"  reason    : {info['reason']}")
    out.append(f"  preview   : {info['is_preview_host']}")
    out.append(f"  native    : {info['native_module_linked']}")
    out.append(f"  stats     : total={stats['total']} upcoming={stats['upcoming']} expired={stats['expired']}")
    out.append(_section("FEATURES"))
    for name, enabled in info["features"].items():
        out.append(f"  {name:<22}: {'yes' if enabled else 'no'}")
    out.append(_section("SCHEDULED"))
    for entry in result["scheduled"]:
        out.append(f"  {entry['vehicleId']!s:<8} {entry['targetFireTime']}  {entry['backendNotificationId']}")
    if result["delivered"]:
        out.append(_section("DELIVERED"))
        for item in result["delivered"]:
            out.append(f"  {item['title']}  {item['body']}")
    print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
