"""Notification backends, one per execution environment."""

from auctionnotify.backends._base import NotificationBackend
from auctionnotify.backends._timer import ForegroundTimer
from auctionnotify.backends.managed import ManagedBackend
from auctionnotify.backends.native import NativeBackend
from auctionnotify.backends.preview import PreviewBackend

__all__ = [
    "ForegroundTimer",
    "ManagedBackend",
    "NativeBackend",
    "NotificationBackend",
    "PreviewBackend",
]
