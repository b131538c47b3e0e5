from __future__ import annotations

import time
from collections.abc import Iterator

import pytest


@pytest.fixture
def pacific_local_time(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run with the process local zone pinned to UTC-8/UTC-7."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "PST8PDT,M3.2.0,M11.1.0")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
