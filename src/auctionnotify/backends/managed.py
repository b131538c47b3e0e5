"""Backend for the standalone managed runtime.

Notifications are scheduled through the host SDK and delivered by the
OS.  A background task keeps the ledger tidy while the app is not in
the foreground.  When the task cannot be registered the backend falls
back to the preview strategy (foreground timer + app-state sweep) and
stops claiming guaranteed delivery.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from auctionnotify.backends._base import SweepCallback, _utcnow
from auctionnotify.backends._hosted import HostedBackend
from auctionnotify.config import NotifyConfig
from auctionnotify.exceptions import NotifyBackgroundTaskError
from auctionnotify.host import AppStateSource, BackgroundTaskRegistry, NotificationHost
from auctionnotify.models.notification import BackendCapabilities, BackendVariant

_logger = logging.getLogger(__name__)


class ManagedBackend(HostedBackend):
    variant = BackendVariant.MANAGED
    service_name = "ManagedNotificationService"
    capabilities = BackendCapabilities(
        background_tasks=True,
        push_notifications=True,
        local_notifications=True,
        app_state_monitoring=True,
        badge_count=True,
        sound_customization=True,
        native_capabilities=False,
        guaranteed_delivery=True,
    )

    def __init__(
        self,
        host: NotificationHost,
        config: NotifyConfig,
        *,
        tasks: BackgroundTaskRegistry | None = None,
        app_state: AppStateSource | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(host, config, app_state=app_state, clock=clock)
        self._tasks = tasks
        self._fallback_active = False
        self._task_registered = False

    @property
    def fallback_active(self) -> bool:
        """Whether the foreground timer replaced the background task."""
        return self._fallback_active

    @property
    def features(self) -> BackendCapabilities:
        if not self._fallback_active:
            return self.capabilities
        return self.capabilities.model_copy(update={"background_tasks": False, "guaranteed_delivery": False})

    async def _start(self, sweep: SweepCallback) -> None:
        try:
            await self._register_background_task(sweep)
        except Exception:
            _logger.debug("Background task registration failed; using foreground timer", exc_info=True)
            self._fallback_active = True
            self._watch_app_state()
            self._start_fallback_timer(sweep)

    async def _register_background_task(self, sweep: SweepCallback) -> None:
        task_name = self._config.background_task_name
        if self._tasks is None:
            raise NotifyBackgroundTaskError("No background task registry available", task_name=task_name)
        self._tasks.define_task(task_name, sweep)
        if not await self._tasks.is_task_registered(task_name):
            raise NotifyBackgroundTaskError(f"Task {task_name!r} did not register", task_name=task_name)
        self._task_registered = True
        _logger.debug("Background task %s registered", task_name)

    async def _stop(self) -> None:
        await super()._stop()
        if self._task_registered and self._tasks is not None:
            try:
                await self._tasks.unregister_task(self._config.background_task_name)
            except Exception:
                _logger.debug("Failed to unregister background task", exc_info=True)
        self._task_registered = False
        self._fallback_active = False
