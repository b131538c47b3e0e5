"""Uniform interface over the platform's one-shot scheduled notifications.

Each concrete backend implements the underscore-prefixed primitives;
the public methods here add the shared contract:

* ``request_permission`` fails closed (``DENIED``) instead of raising.
* ``schedule_at`` rejects fire times that are not strictly in the future
  and refuses to schedule without permission.
* Host failures surface as :class:`NotifySchedulingError`.
* ``list_pending`` and the badge helpers are best-effort.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import ClassVar

from auctionnotify.config import NotifyConfig
from auctionnotify.exceptions import NotifyError, NotifySchedulingError
from auctionnotify.models.notification import (
    BackendCapabilities,
    BackendVariant,
    NotificationContent,
    PendingNotification,
    PermissionStatus,
)

_logger = logging.getLogger(__name__)

SweepCallback = Callable[[], Awaitable[object]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationBackend(abc.ABC):
    """Base for the preview, managed, and native backends."""

    variant: ClassVar[BackendVariant]
    service_name: ClassVar[str]
    capabilities: ClassVar[BackendCapabilities]

    def __init__(
        self,
        config: NotifyConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._clock = clock
        self._permission = PermissionStatus.UNDETERMINED
        self._sweep: SweepCallback | None = None

    @property
    def name(self) -> str:
        return self.service_name

    @property
    def storage_key(self) -> str:
        """Key of this backend's ledger mirror."""
        return self._config.storage_key

    @property
    def features(self) -> BackendCapabilities:
        """Capabilities in effect right now (may degrade after ``start``)."""
        return self.capabilities

    @property
    def guaranteed_delivery(self) -> bool:
        """Whether the OS delivers scheduled notifications without the app running."""
        return self.features.guaranteed_delivery

    @property
    def is_started(self) -> bool:
        return self._sweep is not None

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------

    async def request_permission(self) -> PermissionStatus:
        """Ask for notification permission.

        Idempotent.  Registers the notification channel/category as a
        side effect once permission is granted.  Any underlying error
        yields ``DENIED``.
        """
        try:
            status = await self._get_permission_status()
            if not status.is_granted:
                status = await self._request_permission()
        except Exception:
            _logger.debug("%s permission request failed", self.name, exc_info=True)
            status = PermissionStatus.DENIED

        self._permission = status
        if status.is_granted:
            try:
                await self._register_channels()
            except Exception:
                _logger.debug("%s channel registration failed", self.name, exc_info=True)
        return status

    async def get_permission_status(self) -> PermissionStatus:
        """Read-only permission probe."""
        try:
            return await self._get_permission_status()
        except Exception:
            _logger.debug("%s permission probe failed", self.name, exc_info=True)
            return PermissionStatus.UNDETERMINED

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def schedule_at(self, identifier: str, fire_time: datetime, content: NotificationContent) -> str:
        """Schedule *content* to fire at *fire_time*; returns the backend id.

        Re-scheduling the same *identifier* replaces the earlier
        registration.

        Raises
        ------
        NotifySchedulingError
            If *fire_time* is not strictly in the future, permission is
            not granted, or the platform rejects the call.
        """
        now = self._clock()
        if fire_time <= now:
            raise NotifySchedulingError(
                f"fire time {fire_time.isoformat()} is not after {now.isoformat()}",
                identifier=identifier,
            )
        if not self._permission.is_granted:
            self._permission = await self.get_permission_status()
            if not self._permission.is_granted:
                raise NotifySchedulingError(
                    f"notification permission is {self._permission.value}",
                    identifier=identifier,
                )
        try:
            return await self._schedule(identifier, fire_time, content)
        except NotifyError:
            raise
        except Exception as exc:
            raise NotifySchedulingError(f"{self.name} rejected {identifier}: {exc}", identifier=identifier) from exc

    async def cancel(self, backend_notification_id: str) -> None:
        """Cancel one registration.  Unknown ids are not an error."""
        try:
            await self._cancel(backend_notification_id)
        except Exception as exc:
            raise NotifySchedulingError(
                f"{self.name} failed to cancel {backend_notification_id}: {exc}",
                identifier=backend_notification_id,
            ) from exc

    async def cancel_all(self) -> None:
        """Cancel every registration this backend made."""
        try:
            await self._cancel_all()
        except Exception as exc:
            raise NotifySchedulingError(f"{self.name} failed to cancel all notifications: {exc}") from exc

    async def send_immediate(self, content: NotificationContent) -> None:
        """Present *content* now."""
        try:
            await self._send_immediate(content)
        except Exception as exc:
            raise NotifySchedulingError(f"{self.name} failed to send notification: {exc}") from exc

    async def list_pending(self) -> list[PendingNotification]:
        """Registrations the platform still holds; ``[]`` on failure."""
        try:
            return await self._list_pending()
        except Exception:
            _logger.debug("%s failed to list pending notifications", self.name, exc_info=True)
            return []

    def forget(self, backend_notification_id: str) -> None:
        """Drop bookkeeping for a registration that has already fired."""
        return None

    async def set_badge_count(self, count: int) -> None:
        if not self.features.badge_count:
            return
        try:
            await self._set_badge_count(max(0, count))
        except Exception:
            _logger.debug("%s failed to set badge count", self.name, exc_info=True)

    async def clear_badge(self) -> None:
        await self.set_badge_count(0)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, sweep: SweepCallback) -> None:
        """Attach the sweep driver (timer, listener, or background task)."""
        if self._sweep is not None:
            return
        self._sweep = sweep
        await self._start(sweep)

    async def stop(self) -> None:
        """Release timers and listeners.  Safe to call when not started."""
        self._sweep = None
        await self._stop()

    async def _start(self, sweep: SweepCallback) -> None:
        return None

    async def _stop(self) -> None:
        return None

    async def _register_channels(self) -> None:
        return None

    async def _set_badge_count(self, count: int) -> None:
        return None

    # ------------------------------------------------------------------
    # Platform primitives
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def _get_permission_status(self) -> PermissionStatus: ...

    @abc.abstractmethod
    async def _request_permission(self) -> PermissionStatus: ...

    @abc.abstractmethod
    async def _schedule(self, identifier: str, fire_time: datetime, content: NotificationContent) -> str: ...

    @abc.abstractmethod
    async def _cancel(self, backend_notification_id: str) -> None: ...

    @abc.abstractmethod
    async def _cancel_all(self) -> None: ...

    @abc.abstractmethod
    async def _send_immediate(self, content: NotificationContent) -> None: ...

    @abc.abstractmethod
    async def _list_pending(self) -> list[PendingNotification]: ...
