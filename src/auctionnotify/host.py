"""Host platform primitives.

Protocols describing what the platform SDK offers to the backends, and
in-process implementations driven by the asyncio event loop:

* :class:`LocalNotificationHost`: one-shot alarm-triggered local
  notifications, delivered through ``loop.call_later``.
* :class:`AppStateMonitor`: foreground/background transitions.
* :class:`LocalBackgroundTasks`: named periodic tasks.

The compiled native module is described by
:class:`NativeNotificationModule`; it has no in-process counterpart.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from auctionnotify.exceptions import NotifyBackgroundTaskError
from auctionnotify.models.notification import NotificationContent, PendingNotification, PermissionStatus

_logger = logging.getLogger(__name__)

APP_STATE_ACTIVE = "active"
APP_STATE_BACKGROUND = "background"
APP_STATE_INACTIVE = "inactive"


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class NotificationHost(Protocol):
    """Platform notification SDK as seen by the preview and managed backends."""

    async def get_permissions(self) -> PermissionStatus: ...

    async def request_permissions(self) -> PermissionStatus: ...

    async def set_notification_channel(self, channel_id: str, **options: Any) -> None: ...

    async def set_notification_category(self, category_id: str, actions: list[dict[str, Any]]) -> None: ...

    async def schedule(
        self,
        content: NotificationContent,
        *,
        trigger_at: datetime | None,
        identifier: str | None = None,
    ) -> str: ...

    async def cancel_scheduled(self, identifier: str) -> None: ...

    async def cancel_all_scheduled(self) -> None: ...

    async def get_all_scheduled(self) -> list[PendingNotification]: ...

    async def set_badge_count(self, count: int) -> bool: ...


class Subscription(Protocol):
    def remove(self) -> None: ...


@runtime_checkable
class AppStateSource(Protocol):
    """Foreground/background signal of the host application."""

    @property
    def current_state(self) -> str: ...

    def add_listener(self, callback: Callable[[str], None]) -> Subscription: ...


@runtime_checkable
class BackgroundTaskRegistry(Protocol):
    """Registry of named tasks the OS may run while the app is backgrounded."""

    def define_task(self, name: str, task: Callable[[], Awaitable[Any]]) -> None: ...

    async def is_task_registered(self, name: str) -> bool: ...

    async def unregister_task(self, name: str) -> None: ...


@runtime_checkable
class NativeNotificationModule(Protocol):
    """Compiled platform module with full OS-level delivery."""

    async def request_permissions(self) -> str: ...

    async def get_permission_status(self) -> str: ...

    async def create_notification_channel(self, channel_id: str, name: str, description: str) -> None: ...

    async def schedule_notification(
        self,
        identifier: str,
        timestamp_ms: int,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> str: ...

    async def cancel_notification(self, identifier: str) -> None: ...

    async def cancel_all_notifications(self) -> None: ...

    async def get_scheduled_notifications(self) -> list[dict[str, Any]]: ...

    async def send_immediate_notification(self, title: str, body: str, data: dict[str, Any]) -> None: ...

    async def set_badge_count(self, count: int) -> None: ...


# ---------------------------------------------------------------------------
# In-process notification host
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _PendingAlarm:
    identifier: str
    content: NotificationContent
    fire_time: datetime
    handle: asyncio.TimerHandle | None = None


@dataclass(frozen=True)
class DeliveredNotification:
    """A notification the host has presented."""

    identifier: str
    content: NotificationContent
    delivered_at: datetime
    scheduled: bool


class LocalNotificationHost:
    """Event-loop backed notification host.

    Scheduled notifications are armed with ``loop.call_later`` and, when
    they fire, recorded in :attr:`delivered` and passed to the optional
    ``on_delivered`` callback.
    """

    def __init__(
        self,
        *,
        permission: PermissionStatus = PermissionStatus.UNDETERMINED,
        grant_on_request: bool = True,
        supports_badge: bool = True,
        clock: Callable[[], datetime] = _utcnow,
        on_delivered: Callable[[DeliveredNotification], None] | None = None,
    ) -> None:
        self._permission = permission
        self._grant_on_request = grant_on_request
        self._supports_badge = supports_badge
        self._clock = clock
        self._on_delivered = on_delivered
        self._pending: dict[str, _PendingAlarm] = {}
        self.channels: dict[str, dict[str, Any]] = {}
        self.categories: dict[str, list[dict[str, Any]]] = {}
        self.delivered: list[DeliveredNotification] = []
        self.badge_count = 0

    @property
    def permission(self) -> PermissionStatus:
        return self._permission

    async def get_permissions(self) -> PermissionStatus:
        return self._permission

    async def request_permissions(self) -> PermissionStatus:
        if self._permission is PermissionStatus.UNDETERMINED:
            self._permission = PermissionStatus.GRANTED if self._grant_on_request else PermissionStatus.DENIED
        return self._permission

    async def set_notification_channel(self, channel_id: str, **options: Any) -> None:
        self.channels[channel_id] = dict(options)

    async def set_notification_category(self, category_id: str, actions: list[dict[str, Any]]) -> None:
        self.categories[category_id] = copy.deepcopy(actions)

    async def schedule(
        self,
        content: NotificationContent,
        *,
        trigger_at: datetime | None,
        identifier: str | None = None,
    ) -> str:
        if self._permission is not PermissionStatus.GRANTED:
            raise PermissionError("notification permission not granted")

        notification_id = identifier or uuid.uuid4().hex
        if trigger_at is None:
            self._deliver(notification_id, content, scheduled=False)
            return notification_id

        await self.cancel_scheduled(notification_id)
        alarm = _PendingAlarm(identifier=notification_id, content=content, fire_time=trigger_at)
        delay = max(0.0, (trigger_at - self._clock()).total_seconds())
        loop = asyncio.get_running_loop()
        alarm.handle = loop.call_later(delay, self._fire, notification_id)
        self._pending[notification_id] = alarm
        return notification_id

    async def cancel_scheduled(self, identifier: str) -> None:
        alarm = self._pending.pop(identifier, None)
        if alarm is not None and alarm.handle is not None:
            alarm.handle.cancel()

    async def cancel_all_scheduled(self) -> None:
        for identifier in list(self._pending):
            await self.cancel_scheduled(identifier)

    async def get_all_scheduled(self) -> list[PendingNotification]:
        return [
            PendingNotification(
                identifier=alarm.identifier,
                title=alarm.content.title,
                body=alarm.content.body,
                fire_time=alarm.fire_time,
                data=alarm.content.data,
            )
            for alarm in self._pending.values()
        ]

    async def set_badge_count(self, count: int) -> bool:
        if not self._supports_badge:
            return False
        self.badge_count = max(0, count)
        return True

    def close(self) -> None:
        """Disarm every pending alarm."""
        for alarm in self._pending.values():
            if alarm.handle is not None:
                alarm.handle.cancel()
        self._pending.clear()

    def _fire(self, identifier: str) -> None:
        alarm = self._pending.pop(identifier, None)
        if alarm is None:
            return
        self._deliver(identifier, alarm.content, scheduled=True)

    def _deliver(self, identifier: str, content: NotificationContent, *, scheduled: bool) -> None:
        delivered = DeliveredNotification(
            identifier=identifier,
            content=content,
            delivered_at=self._clock(),
            scheduled=scheduled,
        )
        self.delivered.append(delivered)
        if self._on_delivered is not None:
            try:
                self._on_delivered(delivered)
            except Exception:
                _logger.debug("on_delivered callback failed", exc_info=True)


# ---------------------------------------------------------------------------
# App state
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class _AppStateSubscription:
    monitor: AppStateMonitor
    callback: Callable[[str], None]

    def remove(self) -> None:
        self.monitor._remove(self)


class AppStateMonitor:
    """Tracks the app's foreground state and notifies listeners on change."""

    def __init__(self, initial_state: str = APP_STATE_ACTIVE) -> None:
        self._state = initial_state
        self._subscriptions: list[_AppStateSubscription] = []

    @property
    def current_state(self) -> str:
        return self._state

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def add_listener(self, callback: Callable[[str], None]) -> _AppStateSubscription:
        subscription = _AppStateSubscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def set_state(self, state: str) -> None:
        """Record a transition and notify listeners if the state changed."""
        if state == self._state:
            return
        self._state = state
        for subscription in list(self._subscriptions):
            try:
                subscription.callback(state)
            except Exception:
                _logger.debug("App state listener failed state=%s", state, exc_info=True)

    def _remove(self, subscription: _AppStateSubscription) -> None:
        with contextlib.suppress(ValueError):
            self._subscriptions.remove(subscription)


# ---------------------------------------------------------------------------
# Background tasks
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _TaskRegistration:
    task: Callable[[], Awaitable[Any]]
    runner: asyncio.Task[None] | None = None
    runs: int = 0
    failures: list[BaseException] = field(default_factory=list)


class LocalBackgroundTasks:
    """Runs defined tasks periodically on the event loop.

    ``available=False`` models a runtime without background execution:
    :meth:`define_task` then raises :class:`NotifyBackgroundTaskError`.
    """

    def __init__(self, *, interval: float = 15 * 60, available: bool = True) -> None:
        self._interval = interval
        self._available = available
        self._tasks: dict[str, _TaskRegistration] = {}

    @property
    def available(self) -> bool:
        return self._available

    def define_task(self, name: str, task: Callable[[], Awaitable[Any]]) -> None:
        if not self._available:
            raise NotifyBackgroundTaskError("Background tasks are not available in this runtime", task_name=name)
        existing = self._tasks.get(name)
        if existing is not None and existing.runner is not None:
            existing.runner.cancel()
        registration = _TaskRegistration(task=task)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            registration.runner = loop.create_task(self._run(name, registration))
        self._tasks[name] = registration

    async def is_task_registered(self, name: str) -> bool:
        return name in self._tasks

    async def unregister_task(self, name: str) -> None:
        registration = self._tasks.pop(name, None)
        if registration is not None and registration.runner is not None:
            registration.runner.cancel()

    async def run_task(self, name: str) -> None:
        """Run a defined task once, as the OS would on a background wake-up."""
        registration = self._tasks.get(name)
        if registration is None:
            raise NotifyBackgroundTaskError(f"Task {name!r} is not defined", task_name=name)
        await self._invoke(name, registration)

    def runs(self, name: str) -> int:
        registration = self._tasks.get(name)
        return registration.runs if registration is not None else 0

    async def _run(self, name: str, registration: _TaskRegistration) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._invoke(name, registration)

    async def _invoke(self, name: str, registration: _TaskRegistration) -> None:
        registration.runs += 1
        try:
            await registration.task()
        except Exception as exc:
            registration.failures.append(exc)
            _logger.debug("Background task %s failed", name, exc_info=True)
