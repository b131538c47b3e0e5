"""Runtime detection and backend selection.

Selection runs once per service.  Decision order:

1. native module linked and not a preview host -> native backend
2. preview host -> preview backend
3. otherwise -> managed backend
"""

from __future__ import annotations

import dataclasses
import importlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from auctionnotify._constants import PREVIEW_HOST_NAMES
from auctionnotify.backends import ManagedBackend, NativeBackend, NotificationBackend, PreviewBackend
from auctionnotify.config import NotifyConfig
from auctionnotify.host import AppStateSource, BackgroundTaskRegistry, NativeNotificationModule, NotificationHost
from auctionnotify.models.notification import BackendCapabilities, BackendVariant

_logger = logging.getLogger(__name__)

_BACKEND_CLASSES: dict[BackendVariant, type[NotificationBackend]] = {
    BackendVariant.NATIVE: NativeBackend,
    BackendVariant.PREVIEW: PreviewBackend,
    BackendVariant.MANAGED: ManagedBackend,
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def load_native_module(name: str | None) -> NativeNotificationModule | None:
    """Import the compiled notification module *name*, if installed.

    The module may satisfy :class:`NativeNotificationModule` itself or
    expose an object that does as ``notification_module``.
    """
    if not name:
        return None
    try:
        module = importlib.import_module(name)
    except ImportError:
        _logger.debug("Native notification module %s not installed", name)
        return None
    candidate = getattr(module, "notification_module", module)
    if not isinstance(candidate, NativeNotificationModule):
        _logger.debug("Module %s does not provide the native notification interface", name)
        return None
    return candidate


@dataclasses.dataclass(frozen=True)
class RuntimeEnvironment:
    """What the host process looks like to the selector."""

    app_name: str = ""
    dev_mode: bool = False
    platform: str = "android"
    native_module: NativeNotificationModule | None = None
    preview_host_names: tuple[str, ...] = PREVIEW_HOST_NAMES

    @property
    def is_preview_host(self) -> bool:
        return self.app_name in self.preview_host_names or self.dev_mode

    @property
    def native_module_linked(self) -> bool:
        return self.native_module is not None

    @classmethod
    def detect(
        cls,
        config: NotifyConfig,
        *,
        native_module: NativeNotificationModule | None = None,
    ) -> RuntimeEnvironment:
        """Build the environment from *config*, importing the native module if none is given."""
        module = native_module if native_module is not None else load_native_module(config.native_module_name)
        return cls(
            app_name=config.app_name,
            dev_mode=config.dev_mode,
            platform=config.platform,
            native_module=module,
            preview_host_names=config.preview_host_names,
        )


@dataclasses.dataclass(frozen=True)
class BackendSelection:
    """The bound backend variant and why it was chosen."""

    variant: BackendVariant
    reason: str
    capabilities: BackendCapabilities

    @property
    def backend_class(self) -> type[NotificationBackend]:
        return _BACKEND_CLASSES[self.variant]


def select_backend(environment: RuntimeEnvironment) -> BackendSelection:
    if environment.native_module_linked and not environment.is_preview_host:
        variant = BackendVariant.NATIVE
        reason = "Native notification module linked"
    elif environment.is_preview_host:
        variant = BackendVariant.PREVIEW
        if environment.dev_mode and environment.app_name not in environment.preview_host_names:
            reason = "Development build; using preview notifications"
        else:
            reason = f"Running inside preview host {environment.app_name!r}"
    else:
        variant = BackendVariant.MANAGED
        reason = "Standalone build without native module"
    selection = BackendSelection(
        variant=variant,
        reason=reason,
        capabilities=_BACKEND_CLASSES[variant].capabilities,
    )
    _logger.debug("Selected %s backend: %s", variant.value, reason)
    return selection


def create_backend(
    selection: BackendSelection,
    environment: RuntimeEnvironment,
    config: NotifyConfig,
    *,
    host: NotificationHost,
    app_state: AppStateSource | None = None,
    tasks: BackgroundTaskRegistry | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> NotificationBackend:
    """Instantiate the backend named by *selection*."""
    if selection.variant is BackendVariant.NATIVE:
        if environment.native_module is None:
            raise ValueError("native backend selected without a native module")
        return NativeBackend(environment.native_module, config, clock=clock)
    if selection.variant is BackendVariant.PREVIEW:
        return PreviewBackend(host, config, app_state=app_state, clock=clock)
    return ManagedBackend(host, config, tasks=tasks, app_state=app_state, clock=clock)
