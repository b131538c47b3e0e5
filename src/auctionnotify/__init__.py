"""auctionnotify - Auction-ended notification scheduling for favourited vehicles."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("auctionnotify")
except PackageNotFoundError:
    __version__ = "0+local"
from auctionnotify.backends import (
    ForegroundTimer,
    ManagedBackend,
    NativeBackend,
    NotificationBackend,
    PreviewBackend,
)
from auctionnotify.config import NotifyConfig
from auctionnotify.environment import BackendSelection, RuntimeEnvironment, load_native_module, select_backend
from auctionnotify.exceptions import (
    NotifyBackgroundTaskError,
    NotifyConfigError,
    NotifyError,
    NotifyPermissionDeniedError,
    NotifyPersistenceError,
    NotifySchedulingError,
    NotifyStaleEntryRecoveryError,
)
from auctionnotify.host import (
    AppStateMonitor,
    AppStateSource,
    BackgroundTaskRegistry,
    LocalBackgroundTasks,
    LocalNotificationHost,
    NativeNotificationModule,
    NotificationHost,
)
from auctionnotify.models import (
    AuctionVehicle,
    BackendCapabilities,
    BackendVariant,
    NotificationAction,
    NotificationContent,
    NotificationStats,
    PendingNotification,
    PermissionStatus,
    ScheduledNotification,
    ServiceInfo,
    parse_auction_datetime,
)
from auctionnotify.scheduler import AuctionNotificationScheduler
from auctionnotify.service import AuctionNotificationService
from auctionnotify.state.ledger import NotificationLedger
from auctionnotify.storage import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore

__all__ = [
    "__version__",
    "AppStateMonitor",
    "AppStateSource",
    "AuctionNotificationScheduler",
    "AuctionNotificationService",
    "AuctionVehicle",
    "BackendCapabilities",
    "BackendSelection",
    "BackendVariant",
    "BackgroundTaskRegistry",
    "ForegroundTimer",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LocalBackgroundTasks",
    "LocalNotificationHost",
    "ManagedBackend",
    "MemoryKeyValueStore",
    "NativeBackend",
    "NativeNotificationModule",
    "NotificationAction",
    "NotificationBackend",
    "NotificationContent",
    "NotificationHost",
    "NotificationLedger",
    "NotificationStats",
    "NotifyBackgroundTaskError",
    "NotifyConfig",
    "NotifyConfigError",
    "NotifyError",
    "NotifyPermissionDeniedError",
    "NotifyPersistenceError",
    "NotifySchedulingError",
    "NotifyStaleEntryRecoveryError",
    "PendingNotification",
    "PermissionStatus",
    "PreviewBackend",
    "RuntimeEnvironment",
    "ScheduledNotification",
    "ServiceInfo",
    "load_native_module",
    "parse_auction_datetime",
    "select_backend",
]
