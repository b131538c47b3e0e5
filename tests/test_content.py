from __future__ import annotations

from auctionnotify.content import auction_ended, auction_ended_late, diagnostic_notification
from auctionnotify.models.vehicle import AuctionVehicle

_SNAPSHOT = {"id": 7, "make": "BMW", "model": "M3", "year": 2021, "startingBid": 25000.0}


def test_auction_ended_body_includes_vehicle_and_bid() -> None:
    content = auction_ended(_SNAPSHOT, category_id="auction-ended")

    assert content.title == "🏁 Auction Ended!"
    assert content.body == "The auction for your favorite BMW M3 (2021) has ended. Starting bid was $25,000."
    assert content.category_id == "auction-ended"
    assert content.data == {"vehicleId": 7, "type": "auction-ended", "vehicle": _SNAPSHOT}


def test_auction_ended_without_bid_or_name() -> None:
    content = auction_ended({"id": 9}, currency_symbol="€")

    assert content.body == "The auction for your favorite vehicle 9 has ended."


def test_fractional_bid_keeps_cents() -> None:
    content = auction_ended({**_SNAPSHOT, "startingBid": 1234.5}, currency_symbol="€")

    assert content.body.endswith("Starting bid was €1,234.50.")


def test_late_notification_asks_to_check_results() -> None:
    content = auction_ended_late(_SNAPSHOT)

    assert content.body.endswith("has ended. Check the results!")
    assert content.data["type"] == "auction-ended"


def test_diagnostic_content_depends_on_backend() -> None:
    vehicle = AuctionVehicle.model_validate({"id": 7, "make": "BMW", "model": "M3"})

    preview = diagnostic_notification(vehicle)
    native = diagnostic_notification(vehicle, native=True)

    assert preview.title == "🧪 Test Notification"
    assert preview.data["type"] == "test"
    assert "BMW M3" in preview.body
    assert native.data["type"] == "auction-ended-test"
    assert native.title.endswith("(Test)")
