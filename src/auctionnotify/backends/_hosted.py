"""Shared implementation for backends built on the host notification SDK."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime

from auctionnotify._constants import (
    CATEGORY_ACTIONS,
    CHANNEL_DESCRIPTION,
    CHANNEL_LIGHT_COLOR,
    CHANNEL_VIBRATION_PATTERN,
    NOTIFICATION_ID_PREFIX,
)
from auctionnotify.backends._base import NotificationBackend, SweepCallback, _utcnow
from auctionnotify.backends._timer import ForegroundTimer
from auctionnotify.config import NotifyConfig
from auctionnotify.host import APP_STATE_ACTIVE, AppStateSource, NotificationHost, Subscription
from auctionnotify.models.notification import NotificationContent, PendingNotification, PermissionStatus


class HostedBackend(NotificationBackend):
    """Schedules through a :class:`NotificationHost`.

    Tracks the identifiers it registered so ``cancel_all`` only touches
    its own notifications.  Optionally drives the sweep from a
    :class:`ForegroundTimer` and from app-state transitions to
    ``active``.
    """

    def __init__(
        self,
        host: NotificationHost,
        config: NotifyConfig,
        *,
        app_state: AppStateSource | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(config, clock=clock)
        self._host = host
        self._app_state = app_state
        self._app_state_subscription: Subscription | None = None
        self._timer: ForegroundTimer | None = None
        self._scheduled_ids: set[str] = set()
        self._pending_sweeps: set[asyncio.Task[object]] = set()

    @property
    def scheduled_ids(self) -> frozenset[str]:
        """Identifiers registered by this backend and not yet cancelled or pruned."""
        return frozenset(self._scheduled_ids)

    @property
    def fallback_timer(self) -> ForegroundTimer | None:
        """The running foreground timer, if any."""
        return self._timer

    async def _get_permission_status(self) -> PermissionStatus:
        return PermissionStatus(await self._host.get_permissions())

    async def _request_permission(self) -> PermissionStatus:
        return PermissionStatus(await self._host.request_permissions())

    async def _register_channels(self) -> None:
        if self._config.platform == "android":
            await self._host.set_notification_channel(
                self._config.channel_id,
                name=self._config.channel_name,
                importance="high",
                vibration_pattern=list(CHANNEL_VIBRATION_PATTERN),
                light_color=CHANNEL_LIGHT_COLOR,
                sound="default",
                description=CHANNEL_DESCRIPTION,
            )
        await self._host.set_notification_category(
            self._config.category_id,
            [dict(action) for action in CATEGORY_ACTIONS],
        )

    async def _schedule(self, identifier: str, fire_time: datetime, content: NotificationContent) -> str:
        notification_id = await self._host.schedule(content, trigger_at=fire_time, identifier=identifier)
        self._scheduled_ids.add(notification_id)
        return notification_id

    async def _cancel(self, backend_notification_id: str) -> None:
        await self._host.cancel_scheduled(backend_notification_id)
        self._scheduled_ids.discard(backend_notification_id)

    def forget(self, backend_notification_id: str) -> None:
        self._scheduled_ids.discard(backend_notification_id)

    async def _cancel_all(self) -> None:
        # Registrations from an earlier process are recognised by prefix.
        pending = {
            item.identifier
            for item in await self._host.get_all_scheduled()
            if item.identifier.startswith(NOTIFICATION_ID_PREFIX)
        }
        for notification_id in sorted(self._scheduled_ids | pending):
            await self._host.cancel_scheduled(notification_id)
            self._scheduled_ids.discard(notification_id)

    async def _send_immediate(self, content: NotificationContent) -> None:
        await self._host.schedule(content, trigger_at=None)

    async def _list_pending(self) -> list[PendingNotification]:
        return await self._host.get_all_scheduled()

    async def _set_badge_count(self, count: int) -> None:
        await self._host.set_badge_count(count)

    # ------------------------------------------------------------------
    # Foreground sweep drivers
    # ------------------------------------------------------------------

    def _start_fallback_timer(self, sweep: SweepCallback) -> None:
        if self._timer is not None:
            return
        self._timer = ForegroundTimer(self._config.sweep_interval, sweep, name=f"{self.variant.value}-sweep")
        self._timer.start()

    def _watch_app_state(self) -> None:
        if self._app_state is None or self._app_state_subscription is not None:
            return
        self._app_state_subscription = self._app_state.add_listener(self._on_app_state_change)

    def _on_app_state_change(self, state: str) -> None:
        sweep = self._sweep
        if state != APP_STATE_ACTIVE or sweep is None:
            return
        task: asyncio.Task[object] = asyncio.get_running_loop().create_task(sweep())
        self._pending_sweeps.add(task)
        task.add_done_callback(self._pending_sweeps.discard)

    async def _stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._app_state_subscription is not None:
            self._app_state_subscription.remove()
            self._app_state_subscription = None
        for task in list(self._pending_sweeps):
            task.cancel()
        self._pending_sweeps.clear()
