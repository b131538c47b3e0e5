"""Custom exception hierarchy for auctionnotify."""

from __future__ import annotations

from typing import Any


class NotifyError(Exception):
    """Base exception for all auctionnotify errors."""


class NotifyConfigError(NotifyError):
    """Invalid or missing configuration."""


class NotifyPermissionDeniedError(NotifyError):
    """Notification permission was not granted.

    No scheduling is possible while permission is missing.  This is the
    only error the service lets escape to UI code (from ``initialize``),
    so the host application can show a single actionable alert.
    """

    def __init__(self, message: str, *, status: str = "") -> None:
        self.status = status
        super().__init__(message)


class NotifySchedulingError(NotifyError):
    """The backend rejected a schedule or cancel call.

    Raised by the scheduler, logged and swallowed by the service; the
    vehicle is left unscheduled.
    """

    def __init__(
        self,
        message: str,
        *,
        vehicle_id: Any = None,
        identifier: str = "",
    ) -> None:
        self.vehicle_id = vehicle_id
        self.identifier = identifier
        super().__init__(message)


class NotifyPersistenceError(NotifyError):
    """Reading or writing the durable ledger mirror failed.

    The in-memory ledger stays authoritative for the rest of the
    session; the next successful write overwrites the stored blob.
    """

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class NotifyStaleEntryRecoveryError(NotifyError):
    """The sweep could not deliver its synthetic "auction ended" notification.

    The stale entry is pruned regardless.
    """

    def __init__(self, message: str, *, vehicle_id: Any = None) -> None:
        self.vehicle_id = vehicle_id
        super().__init__(message)


class NotifyBackgroundTaskError(NotifyError):
    """A background task could not be defined or registered."""

    def __init__(self, message: str, *, task_name: str = "") -> None:
        self.task_name = task_name
        super().__init__(message)
