"""Shared model helpers.

* :func:`parse_auction_datetime` turns the free-text auction end string
  (``2030/01/01 09:00:00`` or ``2030-01-01 09:00:00``), ISO strings and
  epoch numbers into an aware :class:`~datetime.datetime`.
* :data:`AuctionTimestamp` is the matching ``Annotated`` type for model
  fields.
* :class:`NotifyEnum` is a ``StrEnum`` whose unknown values resolve to
  a fallback member instead of raising.
"""

from __future__ import annotations

import enum
import math
import re
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BeforeValidator, ConfigDict, PlainSerializer

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000

# Date and time separated by a single space, with optional seconds.
_AUCTION_PATTERN = re.compile(
    r"^\s*(\d{4})[-/](\d{1,2})[-/](\d{1,2})(?:[ T](\d{1,2}):(\d{2})(?::(\d{2}))?)?\s*$",
)

FROZEN_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="ignore",
    populate_by_name=True,
)


def _ensure_aware(value: datetime) -> datetime | None:
    if value.tzinfo is not None:
        return value
    # Naive values are wall-clock times in the device's zone.
    try:
        return value.astimezone()
    except (OverflowError, OSError, ValueError):
        return None


def _from_epoch(value: float) -> datetime | None:
    if math.isnan(value) or value <= 0:
        return None
    if value >= _MS_THRESHOLD:
        value /= 1000.0
    try:
        return datetime.fromtimestamp(value, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def parse_auction_datetime(value: Any) -> datetime | None:
    """Parse an auction end time into an aware datetime.

    Accepts ``YYYY/MM/DD HH:MM[:SS]`` and ``YYYY-MM-DD HH:MM[:SS]``,
    ISO-8601 strings (with or without offset), epoch seconds or
    milliseconds, and ``datetime`` instances.  Naive values are read as
    local time.

    Returns ``None`` for empty or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _ensure_aware(value)
    if isinstance(value, (int, float)):
        return _from_epoch(float(value))
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _AUCTION_PATTERN.match(text)
    if match is not None:
        year, month, day, hour, minute, second = (int(part) if part else 0 for part in match.groups())
        try:
            naive = datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None
        return _ensure_aware(naive)

    if text.lstrip("-").replace(".", "", 1).isdigit():
        return _from_epoch(float(text))

    try:
        parsed = datetime.fromisoformat(text.replace("/", "-").replace("Z", "+00:00"))
    except ValueError:
        return None
    return _ensure_aware(parsed)


def _require_auction_datetime(value: Any) -> datetime:
    parsed = parse_auction_datetime(value)
    if parsed is None:
        raise ValueError(f"unparseable timestamp: {value!r}")
    return parsed


AuctionTimestamp = Annotated[
    datetime,
    BeforeValidator(_require_auction_datetime),
    PlainSerializer(lambda value: value.isoformat(), return_type=str, when_used="json"),
]
"""Annotated type that coerces auction strings / epoch numbers to aware datetimes."""


class NotifyEnum(enum.StrEnum):
    """Base for string state enums.

    Matching is case-insensitive.  Subclasses override :meth:`_fallback`
    to name the member that unmapped values resolve to instead of
    raising ``ValueError``.
    """

    @classmethod
    def _fallback(cls) -> NotifyEnum | None:
        return None

    @classmethod
    def _missing_(cls, value: object) -> NotifyEnum | None:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls._fallback()
