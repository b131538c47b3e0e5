from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from auctionnotify.models import (
    AuctionVehicle,
    BackendVariant,
    NotificationStats,
    PermissionStatus,
    ScheduledNotification,
    parse_auction_datetime,
)


def test_slash_and_dash_auction_formats_parse_to_same_instant() -> None:
    slashed = parse_auction_datetime("2030/01/01 09:00:00")
    dashed = parse_auction_datetime("2030-01-01 09:00:00")

    assert slashed is not None
    assert slashed == dashed
    assert slashed.tzinfo is not None
    assert (slashed.year, slashed.month, slashed.day, slashed.hour, slashed.minute) == (2030, 1, 1, 9, 0)


def test_auction_format_without_seconds() -> None:
    parsed = parse_auction_datetime("2030/6/5 18:30")
    assert parsed is not None
    assert (parsed.month, parsed.day, parsed.hour, parsed.minute, parsed.second) == (6, 5, 18, 30, 0)


def test_iso_string_with_offset_keeps_offset() -> None:
    parsed = parse_auction_datetime("2030-01-01T09:00:00+02:00")
    assert parsed == datetime(2030, 1, 1, 7, 0, tzinfo=UTC)


def test_iso_string_with_z_suffix() -> None:
    parsed = parse_auction_datetime("2030-01-01T09:00:00.000Z")
    assert parsed == datetime(2030, 1, 1, 9, 0, tzinfo=UTC)


def test_epoch_seconds_and_milliseconds_agree() -> None:
    seconds = parse_auction_datetime(1_893_488_400)
    millis = parse_auction_datetime(1_893_488_400_000)
    text = parse_auction_datetime("1893488400000")

    assert seconds == millis == text
    assert seconds == datetime(2030, 1, 1, 9, 0, tzinfo=UTC)


@pytest.mark.parametrize("value", [None, "", "   ", "soon", "2030/13/45 25:00", True, [], 0, -5])
def test_unparseable_values_return_none(value: object) -> None:
    assert parse_auction_datetime(value) is None


@pytest.mark.parametrize("value", ["9999/12/31 23:59:59", "9999-12-31T23:00:00", datetime(9999, 12, 31, 23, 0)])
def test_local_time_past_datetime_range_returns_none(pacific_local_time: None, value: object) -> None:
    assert parse_auction_datetime(value) is None


def test_vehicle_with_out_of_range_end_time_has_no_auction_end(pacific_local_time: None) -> None:
    vehicle = AuctionVehicle.model_validate({"id": 1, "auctionDateTime": "9999/12/31 23:59:59"})

    assert vehicle.auction_end is None


def test_naive_datetime_becomes_aware() -> None:
    parsed = parse_auction_datetime(datetime(2030, 1, 1, 9, 0))
    assert parsed is not None
    assert parsed.tzinfo is not None


def test_aware_datetime_is_returned_unchanged() -> None:
    value = datetime(2030, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert parse_auction_datetime(value) is value


def test_vehicle_accepts_app_payload_aliases() -> None:
    vehicle = AuctionVehicle.model_validate(
        {
            "vehicleId": 7,
            "make": "BMW",
            "model": "M3",
            "year": "2021",
            "startingBid": "25,000",
            "auctionDateTime": "2030/01/01 09:00:00",
            "favorite": "true",
            "color": "blue",
        }
    )

    assert vehicle.id == 7
    assert vehicle.year == 2021
    assert vehicle.starting_bid == 25000.0
    assert vehicle.favourite is True
    assert vehicle.raw["color"] == "blue"
    assert vehicle.display_name == "BMW M3"
    assert vehicle.auction_end == parse_auction_datetime("2030-01-01 09:00:00")


def test_vehicle_with_missing_auction_time_has_no_end() -> None:
    vehicle = AuctionVehicle.model_validate({"id": "abc", "auctionDateTime": None})
    assert vehicle.auction_date_time == ""
    assert vehicle.auction_end is None
    assert vehicle.favourite is False


def test_vehicle_rejects_missing_id() -> None:
    with pytest.raises(ValidationError):
        AuctionVehicle.model_validate({"make": "BMW"})
    with pytest.raises(ValidationError):
        AuctionVehicle.model_validate({"id": "  "})


def test_vehicle_snapshot_is_json_safe_and_camel_cased() -> None:
    vehicle = AuctionVehicle.model_validate(
        {"id": 7, "make": "BMW", "model": "M3", "auctionDateTime": "2030/01/01 09:00:00", "images": ["a.jpg"]}
    )
    snapshot = vehicle.snapshot()

    assert snapshot["id"] == 7
    assert snapshot["auctionDateTime"] == "2030/01/01 09:00:00"
    assert snapshot["favourite"] is False
    assert "images" not in snapshot


def test_scheduled_notification_serializes_camel_case() -> None:
    entry = ScheduledNotification(
        vehicle_id=7,
        backend_notification_id="auction-7",
        target_fire_time=datetime(2030, 1, 1, 9, 0, tzinfo=UTC),
        vehicle_snapshot={"id": 7, "make": "BMW"},
    )

    assert entry.to_store() == {
        "vehicleId": 7,
        "backendNotificationId": "auction-7",
        "targetFireTime": "2030-01-01T09:00:00+00:00",
        "vehicleSnapshot": {"id": 7, "make": "BMW"},
    }


def test_scheduled_notification_accepts_legacy_keys() -> None:
    entry = ScheduledNotification.model_validate(
        {
            "vehicleId": 7,
            "notificationId": "0f3c9a",
            "auctionEndTime": "2030-01-01T09:00:00.000Z",
            "vehicle": {"id": 7, "make": "BMW"},
        }
    )

    assert entry.backend_notification_id == "0f3c9a"
    assert entry.target_fire_time == datetime(2030, 1, 1, 9, 0, tzinfo=UTC)
    assert entry.vehicle_snapshot["make"] == "BMW"


def test_scheduled_notification_accepts_epoch_fire_time() -> None:
    entry = ScheduledNotification.model_validate(
        {"vehicleId": "x1", "backendNotificationId": 42, "targetFireTime": 1_893_488_400_000}
    )
    assert entry.backend_notification_id == "42"
    assert entry.target_fire_time == datetime(2030, 1, 1, 9, 0, tzinfo=UTC)


def test_scheduled_notification_rejects_bad_fire_time() -> None:
    with pytest.raises(ValidationError):
        ScheduledNotification.model_validate(
            {"vehicleId": 1, "backendNotificationId": "a", "targetFireTime": "whenever"}
        )


def test_is_stale_at_and_after_fire_time() -> None:
    fire = datetime(2030, 1, 1, 9, 0, tzinfo=UTC)
    entry = ScheduledNotification(vehicle_id=1, backend_notification_id="a", target_fire_time=fire)

    assert entry.is_stale(fire) is True
    assert entry.is_stale(fire + timedelta(seconds=1)) is True
    assert entry.is_stale(fire - timedelta(seconds=1)) is False


def test_permission_status_is_case_insensitive_with_fallback() -> None:
    assert PermissionStatus("GRANTED") is PermissionStatus.GRANTED
    assert PermissionStatus("provisional") is PermissionStatus.UNDETERMINED
    assert PermissionStatus.GRANTED.is_granted
    assert not PermissionStatus.DENIED.is_granted


def test_backend_variant_has_no_fallback() -> None:
    assert BackendVariant("Native") is BackendVariant.NATIVE
    with pytest.raises(ValueError):
        BackendVariant("hybrid")


def test_stats_default_to_zero() -> None:
    assert NotificationStats().model_dump() == {"total": 0, "upcoming": 0, "expired": 0}
