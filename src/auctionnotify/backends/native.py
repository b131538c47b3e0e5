"""Backend for the compiled native notification module.

The module delivers scheduled notifications at the OS level, manages
its own channel, and supports badges, so no foreground sweep is needed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from auctionnotify._constants import CHANNEL_DESCRIPTION
from auctionnotify.backends._base import NotificationBackend, _utcnow
from auctionnotify.config import NotifyConfig
from auctionnotify.host import NativeNotificationModule
from auctionnotify.models.notification import (
    BackendCapabilities,
    BackendVariant,
    NotificationContent,
    PendingNotification,
    PermissionStatus,
)


def _to_pending(item: dict[str, Any]) -> PendingNotification | None:
    identifier = item.get("identifier") or item.get("id")
    if not identifier:
        return None
    fire_time: datetime | None = None
    timestamp = item.get("timestamp") or item.get("fireDate")
    if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool) and timestamp > 0:
        fire_time = datetime.fromtimestamp(timestamp / 1000.0, tz=UTC)
    data = item.get("data")
    return PendingNotification(
        identifier=str(identifier),
        title=str(item.get("title") or ""),
        body=str(item.get("body") or ""),
        fire_time=fire_time,
        data=data if isinstance(data, dict) else {},
    )


class NativeBackend(NotificationBackend):
    variant = BackendVariant.NATIVE
    service_name = "AuctionNotificationModule"
    capabilities = BackendCapabilities(
        background_tasks=True,
        push_notifications=True,
        local_notifications=True,
        app_state_monitoring=True,
        badge_count=True,
        sound_customization=True,
        native_capabilities=True,
        guaranteed_delivery=True,
    )

    def __init__(
        self,
        module: NativeNotificationModule,
        config: NotifyConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(config, clock=clock)
        self._module = module

    async def _get_permission_status(self) -> PermissionStatus:
        return PermissionStatus(await self._module.get_permission_status())

    async def _request_permission(self) -> PermissionStatus:
        return PermissionStatus(await self._module.request_permissions())

    async def _register_channels(self) -> None:
        if self._config.platform == "android":
            await self._module.create_notification_channel(
                self._config.channel_id,
                self._config.channel_name,
                CHANNEL_DESCRIPTION,
            )

    async def _schedule(self, identifier: str, fire_time: datetime, content: NotificationContent) -> str:
        timestamp_ms = int(fire_time.timestamp() * 1000)
        result = await self._module.schedule_notification(
            identifier,
            timestamp_ms,
            content.title,
            content.body,
            content.data,
        )
        return str(result or identifier)

    async def _cancel(self, backend_notification_id: str) -> None:
        await self._module.cancel_notification(backend_notification_id)

    async def _cancel_all(self) -> None:
        await self._module.cancel_all_notifications()

    async def _send_immediate(self, content: NotificationContent) -> None:
        await self._module.send_immediate_notification(content.title, content.body, content.data)

    async def _list_pending(self) -> list[PendingNotification]:
        pending: list[PendingNotification] = []
        for item in await self._module.get_scheduled_notifications():
            if not isinstance(item, dict):
                continue
            parsed = _to_pending(item)
            if parsed is not None:
                pending.append(parsed)
        return pending

    async def _set_badge_count(self, count: int) -> None:
        await self._module.set_badge_count(count)
