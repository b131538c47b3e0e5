from __future__ import annotations

import pytest

from auctionnotify.config import NotifyConfig
from auctionnotify.exceptions import NotifyConfigError


def test_defaults() -> None:
    config = NotifyConfig()

    assert config.storage_key == "auction_notifications_scheduled"
    assert config.preview_storage_key == "expo_go_notifications"
    assert config.sweep_interval == 300
    assert config.channel_id == "auction-alerts"
    assert config.category_id == "auction-ended"
    assert config.background_task_name == "background-auction-check"
    assert config.preview_host_names == ("Expo Go",)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sweep_interval": 0},
        {"sweep_interval": -5},
        {"storage_key": "same", "preview_storage_key": "same"},
        {"platform": "windows"},
    ],
)
def test_invalid_values_raise(kwargs: dict[str, object]) -> None:
    with pytest.raises(NotifyConfigError):
        NotifyConfig(**kwargs)  # type: ignore[arg-type]


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUCTION_NOTIFY_APP_NAME", "Expo Go")
    monkeypatch.setenv("AUCTION_NOTIFY_SWEEP_INTERVAL", "120")
    monkeypatch.setenv("AUCTION_NOTIFY_DEV_MODE", "yes")
    monkeypatch.setenv("AUCTION_NOTIFY_PLATFORM", "ios")
    monkeypatch.setenv("AUCTION_NOTIFY_PREVIEW_HOSTS", "Expo Go, Sandbox ,")
    monkeypatch.setenv("AUCTION_NOTIFY_NATIVE_MODULE", "")

    config = NotifyConfig.from_env()

    assert config.app_name == "Expo Go"
    assert config.sweep_interval == 120.0
    assert config.dev_mode is True
    assert config.platform == "ios"
    assert config.preview_host_names == ("Expo Go", "Sandbox")
    assert config.native_module_name is None


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUCTION_NOTIFY_SWEEP_INTERVAL", "not-a-number")
    monkeypatch.setenv("AUCTION_NOTIFY_DEV_MODE", "1")

    config = NotifyConfig.from_env(sweep_interval=30, dev_mode=False)

    assert config.sweep_interval == 30
    assert config.dev_mode is False


def test_from_env_rejects_bad_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUCTION_NOTIFY_SWEEP_INTERVAL", "soon")

    with pytest.raises(NotifyConfigError):
        NotifyConfig.from_env()
