# ABOUTME: In-memory holder of the settings and tool database documents
# ABOUTME: Owns load/reload, watch targets, and the settings -> registry cascade
import logging
import sys
import threading
from collections.abc import Callable, Sequence
from functools import partial
from pathlib import Path
from typing import Protocol

from mcpswitch.config import (
    DATABASE_ARG_PREFIX,
    DATABASE_FILENAME,
    SETTINGS_FILENAME,
    load_registry,
    load_settings,
)
from mcpswitch.errors import MCPSwitchError, RegistryLoadError, RegistryUnavailableError
from mcpswitch.models import ErrorInfo, Registry, Settings
from mcpswitch.notifier import (
    REGISTRY_ERROR,
    REGISTRY_UPDATED,
    SETTINGS_ERROR,
    SETTINGS_UPDATED,
    Notifier,
)
from mcpswitch.utils.paths import absolute_path, resolve_database_path

logger = logging.getLogger(__name__)


class Watcher(Protocol):
    """What the store needs from a file watch service."""

    def watch(self, path: Path, on_change: Callable[[], None]) -> None:
        ...

    def unwatch(self, path: Path) -> None:
        ...


class ConfigStore:
    """Process-wide current settings, tool database and output directory.

    ABOUTME: All state transitions happen under one re-entrant lock
    ABOUTME: Readers always see a whole document, never a half-applied reload
    ABOUTME: Settings failures fall back to empty platforms and keep running
    ABOUTME: Initial registry failure is fatal, reload failure marks it unavailable
    ABOUTME: The watcher is only called with the lock released

    Args:
        notifier: Where updated/error notifications are pushed
        watcher: File watch service for both documents
        cwd: Working directory (settings.json, defaults, relative paths)
        argv: Start arguments searched for --database=PATH
    """

    def __init__(
        self,
        notifier: Notifier,
        watcher: Watcher,
        cwd: Path | None = None,
        argv: Sequence[str] | None = None,
        settings_filename: str = SETTINGS_FILENAME,
        database_filename: str = DATABASE_FILENAME,
    ) -> None:
        self._notifier = notifier
        self._watcher = watcher
        self._cwd = absolute_path(cwd if cwd is not None else Path.cwd(), Path.cwd())
        self._argv = list(sys.argv if argv is None else argv)
        self._database_filename = database_filename
        self._lock = threading.RLock()

        self._settings_path = self._cwd / settings_filename
        self._settings: Settings | None = None
        self._settings_error: ErrorInfo | None = None
        self._output_dir = self._cwd

        self._registry_path: Path | None = None
        self._registry: Registry | None = None
        self._registry_error: ErrorInfo | None = None
        self._registry_failure: Exception | None = None
        self._registry_loaded_once = False

    @property
    def cwd(self) -> Path:
        return self._cwd

    @property
    def settings_path(self) -> Path:
        return self._settings_path

    @property
    def registry_path(self) -> Path | None:
        with self._lock:
            return self._registry_path

    @property
    def output_dir(self) -> Path:
        with self._lock:
            return self._output_dir

    @property
    def settings_error(self) -> ErrorInfo | None:
        with self._lock:
            return self._settings_error

    @property
    def registry_error(self) -> ErrorInfo | None:
        with self._lock:
            return self._registry_error

    @property
    def registry_available(self) -> bool:
        with self._lock:
            return self._registry is not None

    def start(self) -> None:
        """Load both documents and start watching them.

        ABOUTME: The watcher is called outside the store lock

        Raises:
            RegistryLoadError: If the tool database cannot be loaded
        """
        with self._lock:
            if not self.load_settings(notify=False):
                logger.warning(
                    f"Initial load of {self._settings_path.name} failed. "
                    f"Output directory defaulted to {self._output_dir}"
                )
            path = self._derive_registry_path()
            self._registry_path = path
            loaded = self._load_registry_from(path, reload=False)
            cause = self._registry_failure or MCPSwitchError("unknown error")

        self._watcher.watch(self._settings_path, self._on_settings_changed)
        if not loaded:
            raise RegistryLoadError(path, cause) from cause
        self._watcher.watch(path, partial(self._on_registry_changed, path))

    def stop(self) -> None:
        """Stop watching both documents."""
        with self._lock:
            paths = [self._settings_path]
            if self._registry_path is not None:
                paths.append(self._registry_path)
        for path in paths:
            self._watcher.unwatch(path)

    def snapshot(self) -> tuple[Settings, Path]:
        """Return the current settings and output directory as one consistent pair."""
        with self._lock:
            if self._settings is not None:
                return self._settings, self._output_dir
        self.get_settings()
        with self._lock:
            return self._settings or Settings.default(), self._output_dir

    def get_settings(self) -> Settings:
        """Return the current settings, loading them first if never loaded."""
        with self._lock:
            if self._settings is not None:
                return self._settings
        logger.warning("Settings requested before initial load, attempting to load now")
        self.load_settings(notify=False)
        with self._lock:
            return self._settings or Settings.default()

    def get_registry(self) -> Registry:
        """Return the current tool database.

        ABOUTME: Before any successful load, retries once silently
        ABOUTME: After a lost registry, fails instead of returning stale data

        Raises:
            RegistryUnavailableError: If no valid tool database is held
        """
        with self._lock:
            if self._registry is None and not self._registry_loaded_once:
                path = self._registry_path or self._derive_registry_path()
                if self._load_registry_from(path, reload=False) and self._registry_path is None:
                    self._registry_path = path

            if self._registry is None:
                detail = f": {self._registry_error.message}" if self._registry_error else ""
                raise RegistryUnavailableError(f"Tool database is not available{detail}")
            return self._registry

    def load_settings(self, notify: bool = True) -> bool:
        """Load settings.json and apply it.

        ABOUTME: On success, recomputes output_dir and re-derives the registry path;
        ABOUTME: a changed path triggers exactly one registry reload
        ABOUTME: On failure, falls back to empty platforms and the working directory

        Args:
            notify: Push settings-updated / settings-error notifications

        Returns:
            True if the document loaded
        """
        with self._lock:
            logger.info(f"Attempting to load settings from: {self._settings_path}")
            try:
                settings = load_settings(self._settings_path)
            except MCPSwitchError as e:
                logger.error(f"Failed to load settings from {self._settings_path}: {e}")
                self._settings = Settings.default()
                self._output_dir = self._cwd
                self._settings_error = ErrorInfo(
                    message=f"Failed to reload {self._settings_path.name}: {e}",
                    path=self._settings_path,
                )
                if notify:
                    self._notifier.emit(SETTINGS_ERROR, self._settings_error)
                return False

            changed = settings != self._settings or self._settings_error is not None
            self._settings = settings
            self._settings_error = None
            if settings.output_dir:
                self._output_dir = absolute_path(settings.output_dir, self._cwd)
                logger.info(f"Output directory from settings: {self._output_dir}")
            else:
                self._output_dir = self._cwd
                logger.info(f"Output directory set to working directory: {self._output_dir}")

            if notify and changed:
                self._notifier.emit(SETTINGS_UPDATED, settings)
            elif notify:
                logger.debug("Settings content unchanged, not notifying")

            # Before start() there is no registry to cascade into
            old_path = self._registry_path
            new_path = self._derive_registry_path() if old_path is not None else None
            if new_path is None or new_path == old_path:
                return True
            logger.info(f"Database path changed to {new_path}, reloading tool database")
            # Changes still reported for old_path are ignored from here on
            self._registry_path = new_path

        self._switch_registry(old_path, new_path)
        return True

    def load_registry(self, reload: bool = True) -> bool:
        """Reload the tool database from its current path.

        Args:
            reload: Push registry-updated / registry-error notifications

        Returns:
            True if the document loaded
        """
        with self._lock:
            path = self._registry_path or self._derive_registry_path()
            return self._load_registry_from(path, reload=reload)

    def _derive_registry_path(self) -> Path:
        declared = self._settings.database_path if self._settings is not None else None
        return resolve_database_path(
            declared,
            self._argv,
            self._database_filename,
            self._cwd,
            arg_prefix=DATABASE_ARG_PREFIX,
        )

    def _switch_registry(self, old_path: Path, new_path: Path) -> None:
        self._watcher.unwatch(old_path)
        with self._lock:
            if self._registry_path != new_path:
                logger.debug(f"Switch to {new_path} superseded by {self._registry_path}")
                return
            self._load_registry_from(new_path, reload=True)
        # Watched even after a failed load so a fixed file is picked up
        self._watcher.watch(new_path, partial(self._on_registry_changed, new_path))

    def _load_registry_from(self, path: Path, reload: bool) -> bool:
        logger.info(f"Attempting to load tool database from: {path}")
        try:
            registry = load_registry(path)
        except MCPSwitchError as e:
            logger.error(f"Failed to load tool database from {path}: {e}")
            self._registry = None
            self._registry_failure = e
            self._registry_error = ErrorInfo(message=f"Failed to reload {path}: {e}", path=path)
            if reload:
                self._notifier.emit(REGISTRY_ERROR, self._registry_error)
            return False

        changed = registry != self._registry
        self._registry = registry
        self._registry_error = None
        self._registry_failure = None
        self._registry_loaded_once = True
        logger.info(f"Tool database loaded: {len(registry)} tool(s)")

        if reload and changed:
            self._notifier.emit(REGISTRY_UPDATED, registry)
        elif reload:
            logger.debug("Tool database content unchanged, not notifying")
        return True

    def _on_settings_changed(self) -> None:
        logger.info(f"Change detected in {self._settings_path}. Reloading settings...")
        self.load_settings(notify=True)

    def _on_registry_changed(self, path: Path) -> None:
        with self._lock:
            if path != self._registry_path:
                logger.debug(f"Ignoring change in {path}: no longer the active tool database")
                return
            logger.info(f"Change detected in {path}. Reloading tool database...")
            self._load_registry_from(path, reload=True)
