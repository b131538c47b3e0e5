"""Notification content for auction events."""

from __future__ import annotations

from typing import Any

from auctionnotify._constants import TYPE_AUCTION_ENDED, TYPE_AUCTION_ENDED_TEST, TYPE_TEST
from auctionnotify.models.notification import NotificationContent
from auctionnotify.models.vehicle import AuctionVehicle


def _format_bid(value: Any, currency_symbol: str) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if amount.is_integer():
        return f"{currency_symbol}{int(amount):,}"
    return f"{currency_symbol}{amount:,.2f}"


def _describe(snapshot: dict[str, Any]) -> str:
    name = " ".join(str(snapshot[key]) for key in ("make", "model") if snapshot.get(key))
    if not name:
        name = f"vehicle {snapshot.get('id', '')}".strip()
    year = snapshot.get("year")
    return f"{name} ({year})" if year else name


def _payload(snapshot: dict[str, Any], notification_type: str) -> dict[str, Any]:
    return {"vehicleId": snapshot.get("id"), "type": notification_type, "vehicle": dict(snapshot)}


def auction_ended(
    snapshot: dict[str, Any],
    *,
    category_id: str | None = None,
    currency_symbol: str = "$",
) -> NotificationContent:
    """Content of the scheduled "auction ended" notification."""
    body = f"The auction for your favorite {_describe(snapshot)} has ended."
    bid = _format_bid(snapshot.get("startingBid"), currency_symbol)
    if bid is not None:
        body = f"{body} Starting bid was {bid}."
    return NotificationContent(
        title="🏁 Auction Ended!",
        body=body,
        data=_payload(snapshot, TYPE_AUCTION_ENDED),
        category_id=category_id,
    )


def auction_ended_late(snapshot: dict[str, Any], *, category_id: str | None = None) -> NotificationContent:
    """Content the sweep sends for an auction that ended while no alarm could fire."""
    return NotificationContent(
        title="🏁 Auction Ended!",
        body=f"The auction for your favorite {_describe(snapshot)} has ended. Check the results!",
        data=_payload(snapshot, TYPE_AUCTION_ENDED),
        category_id=category_id,
    )


def diagnostic_notification(
    vehicle: AuctionVehicle,
    *,
    category_id: str | None = None,
    native: bool = False,
) -> NotificationContent:
    """Content of the diagnostics-screen test notification."""
    snapshot = vehicle.snapshot()
    if native:
        return NotificationContent(
            title="🏁 Auction Ended! (Test)",
            body=f"Test notification: The auction for your favorite {_describe(snapshot)} has ended.",
            data=_payload(snapshot, TYPE_AUCTION_ENDED_TEST),
            category_id=category_id,
        )
    return NotificationContent(
        title="🧪 Test Notification",
        body=f"This is a test notification for {vehicle.display_name}. Notifications are working!",
        data=_payload(snapshot, TYPE_TEST),
        category_id=category_id,
    )
