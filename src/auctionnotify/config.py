"""Service configuration for auctionnotify."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from auctionnotify._constants import (
    BACKGROUND_TASK_NAME,
    CATEGORY_ID,
    CHANNEL_ID,
    CHANNEL_NAME,
    DEFAULT_SWEEP_INTERVAL_S,
    LEDGER_STORAGE_KEY,
    PREVIEW_HOST_NAMES,
    PREVIEW_LEDGER_STORAGE_KEY,
)
from auctionnotify.exceptions import NotifyConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_tuple(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class NotifyConfig:
    """Service configuration.

    Parameters
    ----------
    storage_key : str
        Key of the ledger mirror used by the managed and native backends.
    preview_storage_key : str
        Key of the ledger mirror used by the preview backend.  Must differ
        from ``storage_key``.
    sweep_interval : float
        Seconds between foreground-timer sweeps (preview backend and the
        managed backend's fallback mode).  Defaults to 5 minutes.
    channel_id : str
        Android notification channel identifier.
    channel_name : str
        Human-readable Android channel name.
    category_id : str
        Notification category carrying the "View Details"/"Dismiss" actions.
    background_task_name : str
        Name under which the managed backend registers its periodic check.
    app_name : str
        Host application name, used to detect the sandboxed preview host.
    dev_mode : bool
        Development build flag.  Development builds are treated as
        preview hosts.
    platform : str
        ``"android"``, ``"ios"`` or ``"web"``.
    preview_host_names : tuple of str
        Application names identifying the sandboxed preview host.
    native_module_name : str or None
        Import name of the compiled native notification module.  ``None``
        disables native module discovery.
    currency_symbol : str
        Prefix used when rendering the starting bid in notification bodies.
    """

    storage_key: str = LEDGER_STORAGE_KEY
    preview_storage_key: str = PREVIEW_LEDGER_STORAGE_KEY
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL_S
    channel_id: str = CHANNEL_ID
    channel_name: str = CHANNEL_NAME
    category_id: str = CATEGORY_ID
    background_task_name: str = BACKGROUND_TASK_NAME
    app_name: str = ""
    dev_mode: bool = False
    platform: str = "android"
    preview_host_names: tuple[str, ...] = PREVIEW_HOST_NAMES
    native_module_name: str | None = "auction_notification_native"
    currency_symbol: str = "$"

    def __post_init__(self) -> None:
        if self.sweep_interval <= 0:
            raise NotifyConfigError(f"sweep_interval must be positive, got {self.sweep_interval}")
        if self.storage_key == self.preview_storage_key:
            raise NotifyConfigError("storage_key and preview_storage_key must differ")
        if self.platform not in {"android", "ios", "web"}:
            raise NotifyConfigError(f"unsupported platform {self.platform!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> NotifyConfig:
        """Create configuration from environment variables.

        Reads optional ``AUCTION_NOTIFY_*`` variables.  Explicit keyword
        arguments override environment values.

        Returns
        -------
        NotifyConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "AUCTION_NOTIFY_STORAGE_KEY": "storage_key",
            "AUCTION_NOTIFY_PREVIEW_STORAGE_KEY": "preview_storage_key",
            "AUCTION_NOTIFY_CHANNEL_ID": "channel_id",
            "AUCTION_NOTIFY_CHANNEL_NAME": "channel_name",
            "AUCTION_NOTIFY_CATEGORY_ID": "category_id",
            "AUCTION_NOTIFY_BACKGROUND_TASK": "background_task_name",
            "AUCTION_NOTIFY_APP_NAME": "app_name",
            "AUCTION_NOTIFY_PLATFORM": "platform",
            "AUCTION_NOTIFY_CURRENCY_SYMBOL": "currency_symbol",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        interval_env = env.get("AUCTION_NOTIFY_SWEEP_INTERVAL")
        if interval_env is not None and "sweep_interval" not in overrides:
            try:
                config_kwargs["sweep_interval"] = float(interval_env)
            except ValueError as exc:
                raise NotifyConfigError(f"AUCTION_NOTIFY_SWEEP_INTERVAL is not a number: {interval_env!r}") from exc

        if "dev_mode" not in overrides:
            config_kwargs["dev_mode"] = _env_bool(env.get("AUCTION_NOTIFY_DEV_MODE"), False)

        hosts_env = env.get("AUCTION_NOTIFY_PREVIEW_HOSTS")
        if hosts_env is not None and "preview_host_names" not in overrides:
            config_kwargs["preview_host_names"] = _env_tuple(hosts_env)

        # An empty value disables native module discovery.
        native_env = env.get("AUCTION_NOTIFY_NATIVE_MODULE")
        if native_env is not None and "native_module_name" not in overrides:
            config_kwargs["native_module_name"] = native_env.strip() or None

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
