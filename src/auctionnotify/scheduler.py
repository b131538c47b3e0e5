"""Auction notification scheduler.

Decides, per favourited vehicle, whether an "auction ended" notification
should be live, and keeps the backend and the ledger in step:

* ``Unscheduled -> Scheduled``: favourite set and the auction end time is
  valid and in the future.
* ``Scheduled -> Unscheduled``: favourite cleared.
* ``Scheduled -> Scheduled``: favourite set again, or a batch reconcile
  sees a changed end time.  The old registration is cancelled before
  the new one is made; the ledger entry is replaced in one ``put``.
* ``Scheduled -> Fired``: a sweep finds the fire time has passed.  On
  backends without guaranteed delivery the ended notification is sent
  retroactively, then the entry is pruned.

An invalid end time leaves the vehicle unscheduled; that is a skip, not
an error.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from auctionnotify._constants import notification_identifier
from auctionnotify.backends._base import NotificationBackend
from auctionnotify.config import NotifyConfig
from auctionnotify.content import auction_ended, auction_ended_late, diagnostic_notification
from auctionnotify.exceptions import NotifyError, NotifyPersistenceError, NotifyStaleEntryRecoveryError
from auctionnotify.models.notification import BackendVariant, NotificationStats, ScheduledNotification
from auctionnotify.models.vehicle import AuctionVehicle
from auctionnotify.state.ledger import NotificationLedger, VehicleId

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AuctionNotificationScheduler:
    """Owns the ledger and drives the bound backend."""

    def __init__(
        self,
        backend: NotificationBackend,
        ledger: NotificationLedger,
        *,
        config: NotifyConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend = backend
        self._ledger = ledger
        self._config = config or NotifyConfig()
        self._clock = clock
        self._sweeping = False

    @property
    def backend(self) -> NotificationBackend:
        return self._backend

    @property
    def ledger(self) -> NotificationLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Ledger lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> int:
        """Restore the ledger from the durable store."""
        return await self._ledger.load_from_store()

    async def _persist(self) -> None:
        try:
            await self._ledger.save_to_store()
        except NotifyPersistenceError:
            _logger.warning("Ledger not persisted; keeping in-memory state", exc_info=True)

    # ------------------------------------------------------------------
    # Per-vehicle transitions
    # ------------------------------------------------------------------

    async def schedule(self, vehicle: AuctionVehicle) -> ScheduledNotification | None:
        """Schedule (or reschedule) the ended notification for *vehicle*.

        Returns the new ledger entry, or ``None`` when the auction end
        time is missing, unparseable or not in the future.  An existing
        entry is cancelled in that case.

        Raises
        ------
        NotifySchedulingError
            If the backend rejects the cancel or schedule call.
        """
        vehicle_id = vehicle.id
        existing = self._ledger.get(vehicle_id)
        fire_time = vehicle.auction_end
        now = self._clock()
        if fire_time is None or fire_time <= now:
            _logger.debug(
                "Skipping vehicle %s: auction end %r is not in the future",
                vehicle_id,
                vehicle.auction_date_time,
            )
            if existing is not None:
                await self.cancel(vehicle_id)
            return None

        snapshot = vehicle.snapshot()
        snapshot["favourite"] = True

        if existing is not None:
            await self._backend.cancel(existing.backend_notification_id)

        content = auction_ended(
            snapshot,
            category_id=self._config.category_id,
            currency_symbol=self._config.currency_symbol,
        )
        try:
            backend_id = await self._backend.schedule_at(notification_identifier(vehicle_id), fire_time, content)
        except NotifyError:
            if existing is not None:
                self._ledger.remove(vehicle_id)
                await self._persist()
            raise

        entry = ScheduledNotification(
            vehicle_id=vehicle_id,
            backend_notification_id=backend_id,
            target_fire_time=fire_time,
            vehicle_snapshot=snapshot,
        )
        self._ledger.put(entry)
        await self._persist()
        _logger.debug("Scheduled %s for vehicle %s at %s", backend_id, vehicle_id, fire_time.isoformat())
        return entry

    async def cancel(self, vehicle_id: VehicleId) -> bool:
        """Cancel the live notification for *vehicle_id*.

        Returns ``False`` when nothing was scheduled.  If the backend
        cancel fails the entry is kept and the error propagates.
        """
        entry = self._ledger.get(vehicle_id)
        if entry is None:
            return False
        await self._backend.cancel(entry.backend_notification_id)
        self._ledger.remove(vehicle_id)
        await self._persist()
        _logger.debug("Cancelled notification for vehicle %s", vehicle_id)
        return True

    async def update_favorite_status(
        self, vehicle: AuctionVehicle, is_favorite: bool
    ) -> ScheduledNotification | None:
        if is_favorite:
            return await self.schedule(vehicle)
        await self.cancel(vehicle.id)
        return None

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def _is_current(self, vehicle: AuctionVehicle) -> bool:
        entry = self._ledger.get(vehicle.id)
        if entry is None:
            return False
        snapshot = vehicle.snapshot()
        snapshot["favourite"] = True
        return entry.target_fire_time == vehicle.auction_end and entry.vehicle_snapshot == snapshot

    async def schedule_all_favorites(self, vehicles: Iterable[AuctionVehicle]) -> int:
        """Reconcile the ledger with every favourited vehicle in *vehicles*.

        Each vehicle is attempted independently; failures are logged and
        do not abort the batch.  Entries whose end time and snapshot are
        unchanged are left alone.  Returns the number of favourites with
        a live entry afterwards.
        """
        live = 0
        for vehicle in vehicles:
            if not vehicle.favourite:
                continue
            if self._is_current(vehicle):
                live += 1
                continue
            try:
                entry = await self.schedule(vehicle)
            except Exception:
                _logger.debug("Failed to schedule vehicle %s", vehicle.id, exc_info=True)
                continue
            if entry is not None:
                live += 1
        return live

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def _announce_ended(self, entry: ScheduledNotification) -> None:
        content = auction_ended_late(entry.vehicle_snapshot, category_id=self._config.category_id)
        try:
            await self._backend.send_immediate(content)
        except NotifyError as exc:
            raise NotifyStaleEntryRecoveryError(
                f"Could not announce ended auction for vehicle {entry.vehicle_id}",
                vehicle_id=entry.vehicle_id,
            ) from exc

    async def sweep(self) -> list[ScheduledNotification]:
        """Prune entries whose fire time has passed.

        Returns the pruned entries.  A sweep started while another is in
        progress returns ``[]`` immediately.  An entry replaced while the
        sweep is announcing it is left in place.
        """
        if self._sweeping:
            _logger.debug("Sweep already in progress; skipping")
            return []
        self._sweeping = True
        try:
            _, stale = self._ledger.partition(self._clock())
            if not stale:
                return []
            announce = not self._backend.guaranteed_delivery
            pruned: list[ScheduledNotification] = []
            for entry in stale:
                if self._ledger.get(entry.vehicle_id) is not entry:
                    continue
                if announce:
                    try:
                        await self._announce_ended(entry)
                    except NotifyStaleEntryRecoveryError:
                        _logger.warning("Pruning entry without notification", exc_info=True)
                if not self._ledger.discard(entry):
                    _logger.debug("Vehicle %s rescheduled during sweep; keeping new entry", entry.vehicle_id)
                    continue
                self._backend.forget(entry.backend_notification_id)
                pruned.append(entry)
            if pruned:
                await self._persist()
            _logger.debug("Sweep pruned %d stale entries", len(pruned))
            return pruned
        finally:
            self._sweeping = False

    # ------------------------------------------------------------------
    # Bulk / diagnostics
    # ------------------------------------------------------------------

    async def clear_all(self) -> bool:
        """Cancel every notification and empty the ledger.

        Returns ``False`` when the backend could not cancel; the ledger
        and its stored mirror are then kept so the registrations stay
        tracked.
        """
        try:
            await self._backend.cancel_all()
        except NotifyError:
            _logger.warning("Backend cancel_all failed; keeping ledger", exc_info=True)
            return False
        self._ledger.clear()
        try:
            await self._ledger.discard_from_store()
        except NotifyPersistenceError:
            _logger.warning("Ledger mirror not removed", exc_info=True)
        await self._backend.clear_badge()
        return True

    async def send_test(self, vehicle: AuctionVehicle) -> None:
        """Send the diagnostics test notification for *vehicle* now."""
        content = diagnostic_notification(
            vehicle,
            category_id=self._config.category_id,
            native=self._backend.variant is BackendVariant.NATIVE,
        )
        await self._backend.send_immediate(content)

    def get_stats(self) -> NotificationStats:
        return self._ledger.stats(self._clock())

    def scheduled_notifications(self) -> list[ScheduledNotification]:
        return self._ledger.entries()
