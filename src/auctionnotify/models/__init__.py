"""Data models for auction notification scheduling."""

from auctionnotify.models._base import AuctionTimestamp, NotifyEnum, parse_auction_datetime
from auctionnotify.models.notification import (
    BackendCapabilities,
    BackendVariant,
    NotificationAction,
    NotificationContent,
    NotificationStats,
    PendingNotification,
    PermissionStatus,
    ScheduledNotification,
    ServiceInfo,
)
from auctionnotify.models.vehicle import AuctionVehicle

__all__ = [
    "AuctionTimestamp",
    "AuctionVehicle",
    "BackendCapabilities",
    "BackendVariant",
    "NotificationAction",
    "NotificationContent",
    "NotificationStats",
    "NotifyEnum",
    "PendingNotification",
    "PermissionStatus",
    "ScheduledNotification",
    "ServiceInfo",
    "parse_auction_datetime",
]
