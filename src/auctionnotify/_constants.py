"""Internal constants shared across the library."""

# ------------------------------------------------------------------
# Durable storage keys
# ------------------------------------------------------------------

LEDGER_STORAGE_KEY = "auction_notifications_scheduled"
# Kept distinct so a preview-host ledger never collides with the
# standalone ledger across app upgrades.
PREVIEW_LEDGER_STORAGE_KEY = "expo_go_notifications"

# ------------------------------------------------------------------
# Scheduling
# ------------------------------------------------------------------

NOTIFICATION_ID_PREFIX = "auction-"
BACKGROUND_TASK_NAME = "background-auction-check"
DEFAULT_SWEEP_INTERVAL_S: float = 5 * 60

PREVIEW_HOST_NAMES: tuple[str, ...] = ("Expo Go",)

# ------------------------------------------------------------------
# Channel / category registration
# ------------------------------------------------------------------

CHANNEL_ID = "auction-alerts"
CHANNEL_NAME = "Car Auction Alerts"
CHANNEL_DESCRIPTION = "Notifications for favorite car auction endings"
CHANNEL_VIBRATION_PATTERN: tuple[int, ...] = (0, 250, 250, 250)
CHANNEL_LIGHT_COLOR = "#FF231F7C"

CATEGORY_ID = "auction-ended"
CATEGORY_ACTIONS: tuple[dict[str, object], ...] = (
    {"identifier": "view-auction", "buttonTitle": "View Details", "options": {"opensAppToForeground": True}},
    {"identifier": "dismiss", "buttonTitle": "Dismiss", "options": {"isDestructive": False}},
)

# ------------------------------------------------------------------
# Notification payload types
# ------------------------------------------------------------------

TYPE_AUCTION_ENDED = "auction-ended"
TYPE_AUCTION_ENDED_TEST = "auction-ended-test"
TYPE_TEST = "test"

ACTION_NAVIGATE_TO_VEHICLE = "navigate-to-vehicle"


def notification_identifier(vehicle_id: object) -> str:
    """Return the caller-supplied backend identifier for *vehicle_id*."""
    return f"{NOTIFICATION_ID_PREFIX}{vehicle_id}"
