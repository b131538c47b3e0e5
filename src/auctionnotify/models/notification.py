"""Notification ledger, content, and diagnostics models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from auctionnotify.models._base import FROZEN_MODEL_CONFIG, AuctionTimestamp, NotifyEnum


class PermissionStatus(NotifyEnum):
    """Notification permission state reported by a backend."""

    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"

    @classmethod
    def _fallback(cls) -> PermissionStatus:
        return cls.UNDETERMINED

    @property
    def is_granted(self) -> bool:
        return self is PermissionStatus.GRANTED


class BackendVariant(NotifyEnum):
    """The three mutually exclusive backend implementations."""

    NATIVE = "native"
    PREVIEW = "preview"
    MANAGED = "managed"


class NotificationContent(BaseModel):
    """Title, body, and payload of a single notification."""

    model_config = FROZEN_MODEL_CONFIG

    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)
    category_id: str | None = None
    sound: str | None = "default"


class ScheduledNotification(BaseModel):
    """A ledger entry: one live scheduled notification for one vehicle.

    Serialized with camelCase keys.  Validation also accepts the keys
    written by earlier app releases (``notificationId``,
    ``auctionEndTime``, ``vehicle``).
    """

    model_config = FROZEN_MODEL_CONFIG

    vehicle_id: int | str = Field(
        validation_alias=AliasChoices("vehicleId", "vehicle_id"),
        serialization_alias="vehicleId",
    )
    """Ledger key."""
    backend_notification_id: str = Field(
        validation_alias=AliasChoices("backendNotificationId", "notificationId", "backend_notification_id"),
        serialization_alias="backendNotificationId",
    )
    """Opaque id assigned by the backend; required to cancel."""
    target_fire_time: AuctionTimestamp = Field(
        validation_alias=AliasChoices("targetFireTime", "auctionEndTime", "target_fire_time"),
        serialization_alias="targetFireTime",
    )
    """Absolute fire time (aware)."""
    vehicle_snapshot: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("vehicleSnapshot", "vehicle", "vehicle_snapshot"),
        serialization_alias="vehicleSnapshot",
    )
    """Vehicle record at scheduling time."""

    @field_validator("backend_notification_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def is_stale(self, now: datetime) -> bool:
        """Whether the fire time is at or before *now*."""
        return self.target_fire_time <= now

    def to_store(self) -> dict[str, Any]:
        """JSON-safe dict in the persisted layout."""
        return self.model_dump(mode="json", by_alias=True)


class PendingNotification(BaseModel):
    """A notification the backend reports as still scheduled."""

    model_config = FROZEN_MODEL_CONFIG

    identifier: str
    title: str = ""
    body: str = ""
    fire_time: datetime | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationStats(BaseModel):
    """Partition of ledger entries on ``target_fire_time > now``."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    upcoming: int = 0
    expired: int = 0


class BackendCapabilities(BaseModel):
    """Capability flags of a backend variant, shown on the diagnostics screen."""

    model_config = ConfigDict(frozen=True)

    background_tasks: bool = False
    push_notifications: bool = False
    local_notifications: bool = True
    app_state_monitoring: bool = False
    badge_count: bool = False
    sound_customization: bool = False
    native_capabilities: bool = False
    guaranteed_delivery: bool = False


class ServiceInfo(BaseModel):
    """Which backend the environment selector bound, and why."""

    model_config = ConfigDict(frozen=True)

    variant: BackendVariant
    service_name: str
    reason: str
    is_preview_host: bool
    native_module_linked: bool
    features: BackendCapabilities
    initialized: bool = False


class NotificationAction(BaseModel):
    """What the host app should do after the user taps a notification."""

    model_config = ConfigDict(frozen=True)

    type: str
    vehicle_id: int | str
    vehicle: dict[str, Any] = Field(default_factory=dict)
