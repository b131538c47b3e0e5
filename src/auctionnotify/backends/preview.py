"""Backend for the sandboxed preview host.

The preview host has no background execution and no badge support.
Scheduled local notifications only fire while the app runs, so the
sweep is driven by a foreground timer (every ``sweep_interval``) and by
every return to the foreground; auctions that ended in the meantime get
a retroactive "auction ended" notification from the scheduler.
"""

from __future__ import annotations

from auctionnotify.backends._base import SweepCallback
from auctionnotify.backends._hosted import HostedBackend
from auctionnotify.models.notification import BackendCapabilities, BackendVariant


class PreviewBackend(HostedBackend):
    variant = BackendVariant.PREVIEW
    service_name = "PreviewNotificationService"
    capabilities = BackendCapabilities(
        background_tasks=False,
        push_notifications=False,
        local_notifications=True,
        app_state_monitoring=True,
        badge_count=False,
        sound_customization=False,
        native_capabilities=False,
        guaranteed_delivery=False,
    )

    @property
    def storage_key(self) -> str:
        return self._config.preview_storage_key

    async def _start(self, sweep: SweepCallback) -> None:
        self._watch_app_state()
        self._start_fallback_timer(sweep)
