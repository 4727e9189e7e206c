# mcpswitch - per-platform MCP server selection with live-reloaded settings
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export the store, its collaborators and the data models
from mcpswitch.errors import (
    DocumentIOError,
    MCPSwitchError,
    NotFoundError,
    ParseError,
    RegistryLoadError,
    RegistryUnavailableError,
    SideEffectError,
)
from mcpswitch.models import ErrorInfo, PlatformSettings, Registry, SaveResult, ServerConfig, Settings
from mcpswitch.notifier import Notifier
from mcpswitch.platform_config import PlatformConfigManager
from mcpswitch.session import SelectionSession
from mcpswitch.store import ConfigStore
from mcpswitch.watcher import FileWatcher

__all__ = [
    "__version__",
    "ConfigStore",
    "FileWatcher",
    "Notifier",
    "PlatformConfigManager",
    "SelectionSession",
    "ErrorInfo",
    "PlatformSettings",
    "Registry",
    "SaveResult",
    "ServerConfig",
    "Settings",
    "MCPSwitchError",
    "ParseError",
    "NotFoundError",
    "DocumentIOError",
    "SideEffectError",
    "RegistryLoadError",
    "RegistryUnavailableError",
]
