from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import pytest

from auctionnotify import AuctionNotificationService, NotifyConfig
from auctionnotify.environment import RuntimeEnvironment
from auctionnotify.exceptions import NotifyPermissionDeniedError
from auctionnotify.host import AppStateMonitor, LocalBackgroundTasks, LocalNotificationHost
from auctionnotify.models.notification import (
    BackendVariant,
    NotificationContent,
    PermissionStatus,
    ScheduledNotification,
)
from auctionnotify.storage import MemoryKeyValueStore

_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

_BMW = {
    "id": 7,
    "make": "BMW",
    "model": "M3",
    "auctionDateTime": "2030/01/01 09:00:00",
    "favourite": False,
}


def _now() -> datetime:
    return _NOW


class _RejectingHost(LocalNotificationHost):
    async def schedule(
        self,
        content: NotificationContent,
        *,
        trigger_at: datetime | None,
        identifier: str | None = None,
    ) -> str:
        raise RuntimeError("alarm manager unavailable")


def _service(
    *,
    environment: RuntimeEnvironment | None = None,
    host: LocalNotificationHost | None = None,
    store: MemoryKeyValueStore | None = None,
    **kwargs: Any,
) -> tuple[AuctionNotificationService, LocalNotificationHost, MemoryKeyValueStore]:
    host = host if host is not None else LocalNotificationHost(permission=PermissionStatus.GRANTED, clock=_now)
    store = store if store is not None else MemoryKeyValueStore()
    service = AuctionNotificationService(
        NotifyConfig(native_module_name=None),
        store=store,
        host=host,
        environment=environment or RuntimeEnvironment(app_name="Car Auctions"),
        clock=_now,
        **kwargs,
    )
    return service, host, store


@pytest.mark.asyncio
async def test_example_scenario_end_to_end() -> None:
    service, host, store = _service()
    async with service:
        await service.initialize()

        entry = await service.update_favorite_status(_BMW, True)

        assert entry is not None
        assert entry.vehicle_id == 7
        assert service.get_notification_stats().model_dump() == {"total": 1, "upcoming": 1, "expired": 0}
        assert [item.identifier for item in await service.get_scheduled_notifications()] == ["auction-7"]
        assert json.loads(await store.get("auction_notifications_scheduled") or "[]")[0][0] == 7

        await service.update_favorite_status(_BMW, False)

        assert service.get_notification_stats().model_dump() == {"total": 0, "upcoming": 0, "expired": 0}
        assert await service.get_scheduled_notifications() == []
    host.close()


@pytest.mark.asyncio
async def test_initialize_is_idempotent() -> None:
    service, _, _ = _service()
    async with service:
        assert await service.initialize() is True
        assert await service.initialize() is True
        assert service.is_initialized


@pytest.mark.asyncio
async def test_initialize_raises_when_permission_denied() -> None:
    host = LocalNotificationHost(grant_on_request=False, clock=_now)
    service, _, _ = _service(host=host)

    with pytest.raises(NotifyPermissionDeniedError) as excinfo:
        await service.initialize()

    assert excinfo.value.status == "denied"
    assert not service.is_initialized
    # Every other entry point degrades quietly.
    assert await service.update_favorite_status(_BMW, True) is None
    assert await service.schedule_all_favorite_notifications([_BMW]) == 0
    assert await service.send_test_notification(_BMW) is False
    assert await service.check_expired_auctions() == 0
    assert service.get_notification_stats().total == 0


@pytest.mark.asyncio
async def test_update_auto_initializes() -> None:
    service, host, _ = _service()
    async with service:
        entry = await service.update_favorite_status({**_BMW, "favourite": True}, True)

        assert entry is not None
        assert service.is_initialized
    host.close()


@pytest.mark.asyncio
async def test_scheduling_errors_never_escape() -> None:
    host = _RejectingHost(permission=PermissionStatus.GRANTED, clock=_now)
    service, _, _ = _service(host=host)
    async with service:
        await service.initialize()

        assert await service.update_favorite_status(_BMW, True) is None
        assert await service.send_test_notification(_BMW) is False
        assert service.get_notification_stats().total == 0


@pytest.mark.asyncio
async def test_invalid_vehicle_records_are_skipped_in_batch() -> None:
    service, host, _ = _service()
    async with service:
        live = await service.schedule_all_favorite_notifications(
            [
                {**_BMW, "favourite": True},
                {"make": "no id", "favourite": True},
                {"id": 8, "auctionDateTime": "2030/02/01 09:00:00", "favourite": True},
            ]
        )

        assert live == 2
    host.close()


@pytest.mark.asyncio
async def test_corrupt_store_does_not_break_initialize() -> None:
    store = MemoryKeyValueStore({"auction_notifications_scheduled": "]]not-json"})
    service, _, _ = _service(store=store)
    async with service:
        assert await service.initialize() is True
        assert service.get_notification_stats().total == 0


@pytest.mark.asyncio
async def test_out_of_range_persisted_time_does_not_break_initialize(pacific_local_time: None) -> None:
    entry = {
        "backendNotificationId": "auction-1",
        "vehicleId": 1,
        "targetFireTime": "9999/12/31 23:59:59",
        "vehicleSnapshot": {"id": 1},
    }
    store = MemoryKeyValueStore({"auction_notifications_scheduled": json.dumps([[1, entry]])})
    service, host, _ = _service(store=store)
    async with service:
        assert await service.initialize() is True
        assert service.is_initialized
        assert service.get_notification_stats().total == 0
        assert await service.update_favorite_status(_BMW, True) is not None
    host.close()


@pytest.mark.asyncio
async def test_preview_initialize_announces_auctions_that_ended_offline() -> None:
    ended = ScheduledNotification(
        vehicle_id=3,
        backend_notification_id="auction-3",
        target_fire_time=datetime(2025, 12, 1, 9, 0, tzinfo=UTC),
        vehicle_snapshot={"id": 3, "make": "Audi", "model": "RS6"},
    )
    store = MemoryKeyValueStore({"expo_go_notifications": json.dumps([[3, ended.to_store()]])})
    service, host, _ = _service(environment=RuntimeEnvironment(app_name="Expo Go"), store=store)
    async with service:
        await service.initialize()

        assert service.get_notification_stats().total == 0
        assert [item.content.title for item in host.delivered] == ["🏁 Auction Ended!"]
        assert "Audi RS6" in host.delivered[0].content.body
        assert json.loads(await store.get("expo_go_notifications") or "null") == []


@pytest.mark.asyncio
async def test_cleanup_cancels_fallback_timer() -> None:
    app_state = AppStateMonitor()
    service, _, _ = _service(environment=RuntimeEnvironment(app_name="Expo Go"), app_state=app_state)
    await service.initialize()

    timer = service.backend.fallback_timer  # type: ignore[attr-defined]
    assert timer is not None and timer.is_running
    assert app_state.listener_count == 1

    await service.cleanup()

    assert not timer.is_running
    assert app_state.listener_count == 0
    assert not service.is_initialized


@pytest.mark.asyncio
async def test_managed_service_degrades_without_background_tasks() -> None:
    service, _, _ = _service(tasks=LocalBackgroundTasks(available=False))
    async with service:
        await service.initialize()
        info = service.get_service_info()

        assert info.variant is BackendVariant.MANAGED
        assert info.features.guaranteed_delivery is False
        assert info.features.background_tasks is False


@pytest.mark.asyncio
async def test_service_info_reports_single_variant() -> None:
    service, _, _ = _service(environment=RuntimeEnvironment(app_name="Expo Go"))
    info = service.get_service_info()

    assert info.variant is BackendVariant.PREVIEW
    assert info.service_name == "PreviewNotificationService"
    assert info.is_preview_host is True
    assert info.native_module_linked is False
    assert info.initialized is False
    assert set(info.model_dump()) == {
        "variant",
        "service_name",
        "reason",
        "is_preview_host",
        "native_module_linked",
        "features",
        "initialized",
    }


@pytest.mark.asyncio
async def test_send_test_notification_is_delivered_immediately() -> None:
    service, host, _ = _service(environment=RuntimeEnvironment(app_name="Expo Go"))
    async with service:
        assert await service.send_test_notification(_BMW) is True

    assert host.delivered[0].content.data["type"] == "test"


@pytest.mark.asyncio
async def test_session_lifecycle() -> None:
    service, host, store = _service()
    vehicles = [
        {**_BMW, "favourite": True},
        {"id": 8, "make": "Audi", "auctionDateTime": "2030/02/01 09:00:00", "favourite": False},
    ]

    assert await service.on_session_started(vehicles) == 1
    assert service.get_notification_stats().total == 1

    await service.on_session_ended()

    assert service.get_notification_stats().total == 0
    assert not service.is_initialized
    assert await host.get_all_scheduled() == []
    assert await store.get("auction_notifications_scheduled") is None


@pytest.mark.asyncio
async def test_permission_denial_is_reported_once() -> None:
    alerts: list[NotifyPermissionDeniedError] = []
    host = LocalNotificationHost(grant_on_request=False, clock=_now)
    service, _, _ = _service(host=host, on_permission_denied=alerts.append)

    assert await service.on_session_started([_BMW]) == 0
    assert await service.on_session_started([_BMW]) == 0

    assert len(alerts) == 1
    assert alerts[0].status == "denied"


@pytest.mark.asyncio
async def test_clear_all_after_restart_cancels_persisted_notifications() -> None:
    host = LocalNotificationHost(permission=PermissionStatus.GRANTED, clock=_now)
    store = MemoryKeyValueStore()
    first, _, _ = _service(host=host, store=store)
    async with first:
        await first.update_favorite_status(_BMW, True)

    second, _, _ = _service(host=host, store=store)
    await second.clear_all_notifications()

    assert await host.get_all_scheduled() == []
    assert await store.get("auction_notifications_scheduled") is None


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (
            {"type": "auction-ended", "vehicleId": 7, "vehicle": {"id": 7, "make": "BMW"}},
            {"type": "navigate-to-vehicle", "vehicle_id": 7, "vehicle": {"id": 7, "make": "BMW"}},
        ),
        (
            {"type": "auction-ended-test", "vehicleId": "lot-9"},
            {"type": "navigate-to-vehicle", "vehicle_id": "lot-9", "vehicle": {}},
        ),
        ({"type": "test", "vehicleId": 7}, None),
        ({"type": "auction-ended"}, None),
        (None, None),
    ],
)
def test_handle_notification_response(data: dict[str, Any] | None, expected: dict[str, Any] | None) -> None:
    service, _, _ = _service()

    action = service.handle_notification_response(data)

    if expected is None:
        assert action is None
    else:
        assert action is not None
        assert action.model_dump() == expected
