# ABOUTME: Presentation-side state: chosen platform and selected tool ids
# ABOUTME: Reconciles store notifications without discarding unrelated UI state
import logging
import threading
from collections.abc import Callable
from typing import Any

from mcpswitch.errors import RegistryUnavailableError
from mcpswitch.models import ErrorInfo, Registry, SaveResult, Settings
from mcpswitch.notifier import (
    BATCH_ERROR,
    REGISTRY_ERROR,
    REGISTRY_UPDATED,
    SETTINGS_ERROR,
    SETTINGS_UPDATED,
    Notifier,
)
from mcpswitch.platform_config import PlatformConfigManager
from mcpswitch.store import ConfigStore

logger = logging.getLogger(__name__)


def build_document(registry: Registry, tool_ids: set[str]) -> dict[str, Any]:
    """Per-platform document enabling tool_ids, in tool database order.

    ABOUTME: Ids missing from the registry are left out
    """
    return {
        "mcpServers": {
            tool_id: server.to_dict()
            for tool_id, server in registry.servers.items()
            if tool_id in tool_ids
        }
    }


class SelectionSession:
    """Headless model of the tool selection form.

    ABOUTME: Updated notifications are the only source of truth for redraws
    ABOUTME: After every registry update, selected ids are a subset of its keys
    ABOUTME: registry is None while the tool database is unavailable

    Args:
        store: Config store to read documents from
        platforms: Per-platform config reader/writer
        notifier: Notification source
        on_change: Called (without arguments) after every state change
    """

    def __init__(
        self,
        store: ConfigStore,
        platforms: PlatformConfigManager,
        notifier: Notifier,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._platforms = platforms
        self._notifier = notifier
        self._on_change = on_change
        self._lock = threading.RLock()
        self._unsubscribers: list[Callable[[], None]] = []

        self.settings: Settings = Settings.default()
        self.registry: Registry | None = None
        self.platform: str = ""
        self.settings_error: str | None = None
        self.registry_error: str | None = None
        self.batch_error: str | None = None
        self._selected: set[str] = set()

    def open(self, preferred_platform: str | None = None) -> "SelectionSession":
        """Subscribe to notifications and load the initial state."""
        handlers = {
            SETTINGS_UPDATED: self._on_settings_updated,
            SETTINGS_ERROR: self._on_settings_error,
            REGISTRY_UPDATED: self._on_registry_updated,
            REGISTRY_ERROR: self._on_registry_error,
            BATCH_ERROR: self._on_batch_error,
        }
        self._unsubscribers = [
            self._notifier.subscribe(event, handler) for event, handler in handlers.items()
        ]

        with self._lock:
            self.settings = self._store.get_settings()
            error = self._store.settings_error
            self.settings_error = error.message if error else None
            try:
                self.registry = self._store.get_registry()
                self.registry_error = None
            except RegistryUnavailableError as e:
                self.registry = None
                self.registry_error = str(e)

            names = self.settings.platform_names()
            if preferred_platform and preferred_platform in names:
                platform = preferred_platform
            else:
                platform = names[0] if names else ""
            self._load_platform(platform)
        self._changed()
        return self

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def __enter__(self) -> "SelectionSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def registry_available(self) -> bool:
        return self.registry is not None

    def select_platform(self, name: str) -> None:
        """Switch platform and load its saved selection.

        Raises:
            KeyError: If name is not a platform in the current settings
        """
        with self._lock:
            if self.settings.find_platform(name) is None:
                raise KeyError(f"Unknown platform '{name}'")
            self._load_platform(name)
        self._changed()

    def selected_ids(self) -> list[str]:
        """Selected tool ids, in tool database order when it is available."""
        with self._lock:
            if self.registry is None:
                return sorted(self._selected)
            return [tool_id for tool_id in self.registry.ids() if tool_id in self._selected]

    def is_selected(self, tool_id: str) -> bool:
        with self._lock:
            return tool_id in self._selected

    def toggle(self, tool_id: str) -> bool:
        """Flip tool_id's selection and return the new state.

        Raises:
            RegistryUnavailableError: If the tool database is unavailable
            KeyError: If tool_id is not in the tool database
        """
        with self._lock:
            if self.registry is None:
                raise RegistryUnavailableError("Tool database is not available")
            if tool_id not in self.registry:
                raise KeyError(f"Unknown tool '{tool_id}'")
            if tool_id in self._selected:
                self._selected.discard(tool_id)
                selected = False
            else:
                self._selected.add(tool_id)
                selected = True
        self._changed()
        return selected

    def set_selection(self, tool_ids: set[str]) -> None:
        """Replace the selection; ids missing from the tool database are dropped."""
        with self._lock:
            if self.registry is None:
                raise RegistryUnavailableError("Tool database is not available")
            self._selected = {tool_id for tool_id in tool_ids if tool_id in self.registry}
        self._changed()

    def build_document(self) -> dict[str, Any]:
        """Per-platform document for the current selection."""
        with self._lock:
            if self.registry is None:
                raise RegistryUnavailableError("Cannot build config, tool database not loaded")
            return build_document(self.registry, self._selected)

    def save(self) -> SaveResult:
        """Write the current selection for the current platform.

        Raises:
            RegistryUnavailableError: If the tool database is unavailable
        """
        with self._lock:
            document = self.build_document()
            platform = self.platform
        return self._platforms.write(platform, document)

    def _load_platform(self, platform: str) -> None:
        self.platform = platform
        document = self._platforms.read(platform) if platform else {}
        servers = document.get("mcpServers")
        ids = set(servers) if isinstance(servers, dict) else set()
        if self.registry is not None:
            ids = {tool_id for tool_id in ids if tool_id in self.registry}
        self._selected = ids

    def _on_settings_updated(self, settings: Settings) -> None:
        with self._lock:
            self.settings = settings
            self.settings_error = None
            if settings.find_platform(self.platform) is None:
                names = settings.platform_names()
                logger.info(f"Platform '{self.platform}' no longer configured")
                self._load_platform(names[0] if names else "")
        self._changed()

    def _on_settings_error(self, info: ErrorInfo) -> None:
        with self._lock:
            self.settings_error = info.message
        self._changed()

    def _on_registry_updated(self, registry: Registry) -> None:
        with self._lock:
            self.registry = registry
            self.registry_error = None
            self._selected = {tool_id for tool_id in self._selected if tool_id in registry}
        self._changed()

    def _on_registry_error(self, info: ErrorInfo) -> None:
        with self._lock:
            self.registry = None
            self.registry_error = info.message
        self._changed()

    def _on_batch_error(self, info: ErrorInfo) -> None:
        with self._lock:
            self.batch_error = info.message
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
