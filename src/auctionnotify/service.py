"""Integration facade for auction notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from auctionnotify._constants import ACTION_NAVIGATE_TO_VEHICLE, TYPE_AUCTION_ENDED, TYPE_AUCTION_ENDED_TEST
from auctionnotify.backends import NotificationBackend
from auctionnotify.config import NotifyConfig
from auctionnotify.environment import BackendSelection, RuntimeEnvironment, create_backend, select_backend
from auctionnotify.exceptions import NotifyPermissionDeniedError
from auctionnotify.host import (
    AppStateMonitor,
    AppStateSource,
    BackgroundTaskRegistry,
    LocalBackgroundTasks,
    LocalNotificationHost,
    NotificationHost,
)
from auctionnotify.models.notification import (
    NotificationAction,
    NotificationStats,
    PendingNotification,
    ScheduledNotification,
    ServiceInfo,
)
from auctionnotify.models.vehicle import AuctionVehicle
from auctionnotify.scheduler import AuctionNotificationScheduler
from auctionnotify.state.ledger import NotificationLedger
from auctionnotify.storage import KeyValueStore, MemoryKeyValueStore

_logger = logging.getLogger(__name__)

VehicleInput = AuctionVehicle | Mapping[str, Any]

_NAVIGABLE_TYPES = frozenset({TYPE_AUCTION_ENDED, TYPE_AUCTION_ENDED_TEST})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _coerce_vehicle(value: VehicleInput) -> AuctionVehicle:
    if isinstance(value, AuctionVehicle):
        return value
    return AuctionVehicle.model_validate(dict(value))


class AuctionNotificationService:
    """Single entry point used by the app for auction notifications.

    The backend variant is selected once, at construction.  Public
    methods never raise to the caller, except :meth:`initialize` when
    notification permission is finally denied.

    Usage::

        async with AuctionNotificationService(config, store=store) as service:
            await service.initialize()
            await service.schedule_all_favorite_notifications(vehicles)
    """

    def __init__(
        self,
        config: NotifyConfig | None = None,
        *,
        store: KeyValueStore | None = None,
        host: NotificationHost | None = None,
        app_state: AppStateSource | None = None,
        tasks: BackgroundTaskRegistry | None = None,
        environment: RuntimeEnvironment | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_permission_denied: Callable[[NotifyPermissionDeniedError], None] | None = None,
    ) -> None:
        self._config = config or NotifyConfig.from_env()
        self._clock = clock
        self._environment = environment or RuntimeEnvironment.detect(self._config)
        self._selection = select_backend(self._environment)
        self._backend = create_backend(
            self._selection,
            self._environment,
            self._config,
            host=host if host is not None else LocalNotificationHost(clock=clock),
            app_state=app_state if app_state is not None else AppStateMonitor(),
            tasks=tasks if tasks is not None else LocalBackgroundTasks(),
            clock=clock,
        )
        self._ledger = NotificationLedger(
            store if store is not None else MemoryKeyValueStore(),
            self._backend.storage_key,
            clock=clock,
        )
        self._scheduler = AuctionNotificationScheduler(self._backend, self._ledger, config=self._config, clock=clock)
        self._on_permission_denied = on_permission_denied
        self._permission_alerted = False
        self._permission_denied = False
        self._initialized = False
        self._init_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AuctionNotificationService:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.cleanup()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def config(self) -> NotifyConfig:
        return self._config

    @property
    def backend(self) -> NotificationBackend:
        return self._backend

    @property
    def scheduler(self) -> AuctionNotificationScheduler:
        return self._scheduler

    @property
    def selection(self) -> BackendSelection:
        return self._selection

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def get_service_info(self) -> ServiceInfo:
        """Describe the bound backend for the diagnostics screen."""
        return ServiceInfo(
            variant=self._selection.variant,
            service_name=self._backend.name,
            reason=self._selection.reason,
            is_preview_host=self._environment.is_preview_host,
            native_module_linked=self._environment.native_module_linked,
            features=self._backend.features,
            initialized=self._initialized,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Request permission, restore the ledger and start the sweep driver.

        Safe to call repeatedly; later calls return ``True`` at once.
        Returns ``False`` if setup failed for any reason other than
        permission.

        Raises
        ------
        NotifyPermissionDeniedError
            If notification permission was not granted.
        """
        if self._initialized:
            return True
        async with self._init_lock:
            if self._initialized:
                return True

            status = await self._backend.request_permission()
            if not status.is_granted:
                self._permission_denied = True
                _logger.warning("Notification permission %s; auction alerts disabled", status.value)
                raise NotifyPermissionDeniedError(
                    f"Notification permission {status.value}",
                    status=status.value,
                )

            try:
                loaded = await self._scheduler.load()
                await self._backend.start(self._scheduler.sweep)
                await self._scheduler.sweep()
            except Exception:
                _logger.warning("Auction notification setup failed", exc_info=True)
                await self._backend.stop()
                return False

            self._permission_denied = False
            self._initialized = True
            _logger.info(
                "Auction notifications initialized backend=%s entries=%d",
                self._backend.name,
                loaded,
            )
            return True

    async def _ensure_initialized(self) -> bool:
        if self._initialized:
            return True
        if self._permission_denied:
            # Only an explicit initialize() asks again.
            return False
        try:
            return await self.initialize()
        except NotifyPermissionDeniedError:
            _logger.debug("Notifications unavailable: permission not granted")
            return False

    async def cleanup(self) -> None:
        """Stop timers, listeners and background tasks; mark uninitialized."""
        try:
            await self._backend.stop()
        except Exception:
            _logger.debug("Backend stop failed", exc_info=True)
        self._initialized = False

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def update_favorite_status(
        self, vehicle: VehicleInput, is_favorite: bool
    ) -> ScheduledNotification | None:
        """Schedule or cancel the ended notification after a favourite toggle."""
        if not await self._ensure_initialized():
            return None
        try:
            return await self._scheduler.update_favorite_status(_coerce_vehicle(vehicle), is_favorite)
        except Exception:
            _logger.debug("Failed to update favourite status", exc_info=True)
            return None

    async def schedule_all_favorite_notifications(self, vehicles: Iterable[VehicleInput]) -> int:
        """Reconcile notifications for every favourited vehicle in *vehicles*."""
        if not await self._ensure_initialized():
            return 0
        parsed: list[AuctionVehicle] = []
        for vehicle in vehicles:
            try:
                parsed.append(_coerce_vehicle(vehicle))
            except ValidationError:
                _logger.debug("Skipping invalid vehicle record", exc_info=True)
        try:
            return await self._scheduler.schedule_all_favorites(parsed)
        except Exception:
            _logger.debug("Batch scheduling failed", exc_info=True)
            return 0

    async def send_test_notification(self, vehicle: VehicleInput) -> bool:
        """Send the diagnostics test notification; ``True`` on success."""
        if not await self._ensure_initialized():
            return False
        try:
            await self._scheduler.send_test(_coerce_vehicle(vehicle))
        except Exception:
            _logger.debug("Failed to send test notification", exc_info=True)
            return False
        return True

    async def check_expired_auctions(self) -> int:
        """Run a sweep now; returns the number of pruned entries."""
        if not self._initialized:
            return 0
        try:
            return len(await self._scheduler.sweep())
        except Exception:
            _logger.debug("Sweep failed", exc_info=True)
            return 0

    async def clear_all_notifications(self) -> None:
        """Cancel every auction notification and empty the ledger."""
        try:
            if not self._initialized:
                await self._scheduler.load()
            cleared = await self._scheduler.clear_all()
        except Exception:
            _logger.debug("Failed to clear notifications", exc_info=True)
            return
        if not cleared:
            return
        _logger.info("Cleared all auction notifications")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_notification_stats(self) -> NotificationStats:
        try:
            return self._scheduler.get_stats()
        except Exception:
            _logger.debug("Failed to compute notification stats", exc_info=True)
            return NotificationStats()

    async def get_scheduled_notifications(self) -> list[PendingNotification]:
        """Notifications the backend still holds."""
        return await self._backend.list_pending()

    def handle_notification_response(self, data: Mapping[str, Any] | None) -> NotificationAction | None:
        """Map the payload of a tapped notification to an app action.

        Returns ``None`` for payloads that do not refer to an ended
        auction.
        """
        if not data or data.get("type") not in _NAVIGABLE_TYPES:
            return None
        vehicle_id = data.get("vehicleId")
        if not isinstance(vehicle_id, (int, str)) or isinstance(vehicle_id, bool):
            return None
        vehicle = data.get("vehicle")
        return NotificationAction(
            type=ACTION_NAVIGATE_TO_VEHICLE,
            vehicle_id=vehicle_id,
            vehicle=dict(vehicle) if isinstance(vehicle, Mapping) else {},
        )

    # ------------------------------------------------------------------
    # Session hooks
    # ------------------------------------------------------------------

    async def on_session_started(self, vehicles: Iterable[VehicleInput]) -> int:
        """Initialize and schedule every favourite once the user is signed in.

        A denied permission is reported once through
        ``on_permission_denied`` and never retried automatically.
        """
        try:
            ready = await self.initialize()
        except NotifyPermissionDeniedError as exc:
            if not self._permission_alerted:
                self._permission_alerted = True
                if self._on_permission_denied is not None:
                    try:
                        self._on_permission_denied(exc)
                    except Exception:
                        _logger.debug("on_permission_denied callback failed", exc_info=True)
            return 0
        if not ready:
            return 0
        return await self.schedule_all_favorite_notifications(vehicles)

    async def on_session_ended(self) -> None:
        """Clear every notification and release the sweep driver after sign-out."""
        await self.clear_all_notifications()
        await self.cleanup()
