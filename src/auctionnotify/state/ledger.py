"""Scheduled-notification ledger.

In-memory map of vehicle id to :class:`ScheduledNotification`, mirrored
to a :class:`~auctionnotify.storage.KeyValueStore` under one key.

Mutation and persistence are two separate steps: ``put``/``remove``
change the map immediately, ``save_to_store`` writes the mirror
afterwards.  A crash between the two leaves the entry in memory but not
durable; the next ``load_from_store`` simply sees the previous blob.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from auctionnotify.exceptions import NotifyPersistenceError
from auctionnotify.models.notification import NotificationStats, ScheduledNotification
from auctionnotify.storage import KeyValueStore

_logger = logging.getLogger(__name__)

VehicleId = int | str


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _parse_entries(blob: str) -> list[ScheduledNotification]:
    """Decode the persisted ``[[vehicleId, entry], ...]`` array.

    Raises ``ValueError`` when the blob itself is malformed; individually
    invalid entries are skipped.
    """
    decoded = json.loads(blob)
    if not isinstance(decoded, list):
        raise ValueError(f"expected a JSON array, got {type(decoded).__name__}")

    entries: list[ScheduledNotification] = []
    for item in decoded:
        if not isinstance(item, (list, tuple)) or len(item) != 2 or not isinstance(item[1], dict):
            _logger.debug("Skipping malformed ledger pair %r", item)
            continue
        key, payload = item
        data: dict[str, Any] = dict(payload)
        data.setdefault("vehicleId", key)
        try:
            entries.append(ScheduledNotification.model_validate(data))
        except (ValidationError, OverflowError):
            _logger.debug("Skipping invalid ledger entry for vehicle %r", key, exc_info=True)
    return entries


class NotificationLedger:
    """One live entry per vehicle id, write-through to a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._storage_key = storage_key
        self._clock = clock
        self._entries: dict[VehicleId, ScheduledNotification] = {}

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, vehicle_id: object) -> bool:
        return vehicle_id in self._entries

    def __iter__(self) -> Iterator[ScheduledNotification]:
        return iter(list(self._entries.values()))

    def get(self, vehicle_id: VehicleId) -> ScheduledNotification | None:
        return self._entries.get(vehicle_id)

    def put(self, entry: ScheduledNotification) -> ScheduledNotification | None:
        """Insert *entry*, replacing any prior entry for the same vehicle.

        Returns the replaced entry, if any.
        """
        previous = self._entries.get(entry.vehicle_id)
        self._entries[entry.vehicle_id] = entry
        return previous

    def remove(self, vehicle_id: VehicleId) -> ScheduledNotification | None:
        return self._entries.pop(vehicle_id, None)

    def discard(self, entry: ScheduledNotification) -> bool:
        """Remove *entry* only if it is still the live entry for its vehicle."""
        if self._entries.get(entry.vehicle_id) is not entry:
            return False
        del self._entries[entry.vehicle_id]
        return True

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> list[ScheduledNotification]:
        """Snapshot of all entries in insertion order."""
        return list(self._entries.values())

    def partition(
        self, now: datetime | None = None
    ) -> tuple[list[ScheduledNotification], list[ScheduledNotification]]:
        """Split entries into ``(upcoming, stale)`` relative to *now*."""
        current = now if now is not None else self._clock()
        upcoming: list[ScheduledNotification] = []
        stale: list[ScheduledNotification] = []
        for entry in self._entries.values():
            (stale if entry.is_stale(current) else upcoming).append(entry)
        return upcoming, stale

    def stats(self, now: datetime | None = None) -> NotificationStats:
        """Count entries without mutating the ledger."""
        upcoming, _ = self.partition(now)
        total = len(self._entries)
        return NotificationStats(total=total, upcoming=len(upcoming), expired=total - len(upcoming))

    # ------------------------------------------------------------------
    # Durable mirror
    # ------------------------------------------------------------------

    def dumps(self) -> str:
        """Serialize entries to the persisted JSON layout."""
        pairs = [[entry.vehicle_id, entry.to_store()] for entry in self._entries.values()]
        return json.dumps(pairs, ensure_ascii=False)

    async def load_from_store(self) -> int:
        """Replace in-memory entries with the persisted mirror.

        A missing, unreadable, or corrupt blob leaves the ledger empty;
        the failure is logged and never raised.  Returns the number of
        entries loaded.
        """
        self._entries = {}
        try:
            blob = await self._store.get(self._storage_key)
        except Exception:
            _logger.warning("Failed to read ledger key=%s; starting empty", self._storage_key, exc_info=True)
            return 0
        if not blob:
            return 0

        try:
            entries = _parse_entries(blob)
        except (ValueError, OverflowError):
            _logger.warning("Corrupt ledger blob under key=%s; starting empty", self._storage_key, exc_info=True)
            return 0

        for entry in entries:
            self._entries[entry.vehicle_id] = entry
        _logger.debug("Loaded %d ledger entries key=%s", len(self._entries), self._storage_key)
        return len(self._entries)

    async def save_to_store(self) -> None:
        """Write the full ledger to the store.

        Raises
        ------
        NotifyPersistenceError
            If the store rejects the write.  The in-memory ledger is left
            untouched and stays authoritative.
        """
        payload = self.dumps()
        try:
            await self._store.set(self._storage_key, payload)
        except Exception as exc:
            raise NotifyPersistenceError(
                f"Failed to write ledger key={self._storage_key}: {exc}",
                key=self._storage_key,
            ) from exc

    async def discard_from_store(self) -> None:
        """Delete the persisted mirror.

        Raises
        ------
        NotifyPersistenceError
            If the store rejects the removal.
        """
        try:
            await self._store.remove(self._storage_key)
        except Exception as exc:
            raise NotifyPersistenceError(
                f"Failed to remove ledger key={self._storage_key}: {exc}",
                key=self._storage_key,
            ) from exc
