"""Auction vehicle model."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from auctionnotify.models._base import FROZEN_MODEL_CONFIG, parse_auction_datetime


def _safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def _safe_int(value: Any) -> int | None:
    parsed = _safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


class AuctionVehicle(BaseModel):
    """A vehicle record as emitted by the vehicle list store.

    Only ``id``, ``favourite`` and ``auction_date_time`` drive scheduling;
    every other field is payload for the notification body.
    """

    model_config = FROZEN_MODEL_CONFIG

    id: int | str = Field(validation_alias=AliasChoices("id", "vehicleId", "vehicle_id"))
    """Vehicle identity, unique within a session."""
    make: str = Field(default="", validation_alias=AliasChoices("make", "brand"))
    """Manufacturer (e.g. ``"BMW"``)."""
    model: str = Field(default="", validation_alias=AliasChoices("model"))
    """Model name (e.g. ``"M3"``)."""
    year: int | None = Field(default=None, validation_alias=AliasChoices("year"))
    """Model year."""
    starting_bid: float | None = Field(
        default=None,
        validation_alias=AliasChoices("startingBid", "starting_bid", "price"),
    )
    """Auction starting bid."""
    auction_date_time: str = Field(
        default="",
        validation_alias=AliasChoices("auctionDateTime", "auction_date_time"),
    )
    """Free-text auction end timestamp (``2030/01/01 09:00:00`` or dashed)."""
    favourite: bool = Field(default=False, validation_alias=AliasChoices("favourite", "favorite", "isFavorite"))
    """Whether the user marked this vehicle as a favourite."""

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original record for access to additional fields."""

    @property
    def auction_end(self) -> datetime | None:
        """Parsed auction end time, or ``None`` when missing/unparseable."""
        return parse_auction_datetime(self.auction_date_time)

    @property
    def display_name(self) -> str:
        """``"<make> <model>"`` with empty parts dropped."""
        return " ".join(part for part in (self.make, self.model) if part) or f"vehicle {self.id}"

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe copy of the record used to render notification bodies."""
        snapshot: dict[str, Any] = {}
        for key, value in self.raw.items():
            if isinstance(value, (str, int, float, bool)) or value is None:
                snapshot[key] = value
        snapshot.update(
            {
                "id": self.id,
                "make": self.make,
                "model": self.model,
                "year": self.year,
                "startingBid": self.starting_bid,
                "auctionDateTime": self.auction_date_time,
                "favourite": self.favourite,
            }
        )
        return snapshot

    @model_validator(mode="before")
    @classmethod
    def _ensure_raw(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = dict(values)
        merged.setdefault("raw", values)
        return merged

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        if isinstance(value, bool) or value is None:
            raise ValueError("id must be an integer or a string")
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("id must be non-empty")
        return value

    @field_validator("starting_bid", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return _safe_float(value)

    @field_validator("year", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int | None:
        return _safe_int(value)

    @field_validator("auction_date_time", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator("favourite", mode="before")
    @classmethod
    def _coerce_favourite(cls, value: Any) -> bool:
        if value in (True, False):
            return bool(value)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes"}
        return bool(_safe_int(value) == 1)
