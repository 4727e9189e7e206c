# Settings and tool database loading for mcpswitch
import logging
from pathlib import Path
from typing import Any

from mcpswitch.errors import ParseError
from mcpswitch.models import PlatformSettings, Registry, ServerConfig, Settings
from mcpswitch.utils import jsonc
from mcpswitch.utils.env import expand_fields

logger = logging.getLogger(__name__)

# ABOUTME: Settings document name, always looked up in the working directory
SETTINGS_FILENAME = "settings.json"

# ABOUTME: Tool database name used when neither settings nor argv name one
DATABASE_FILENAME = "database.json"

# ABOUTME: Start argument that supplies a fallback tool database path
DATABASE_ARG_PREFIX = "--database="

# ABOUTME: Per-platform file name when the platform declares none
DEFAULT_OUTPUT_FILENAME = "config.json"

# ABOUTME: Placeholder in a platform's batch template for the written file
CONFIG_PATH_TOKEN = "{{config_file_path}}"

# ABOUTME: Watch poll interval in seconds
WATCH_INTERVAL = 1.0

# ABOUTME: Settings fields holding paths, expanded for ${VAR} references
SETTINGS_PATH_FIELDS = ("output_dir", "database_path", "backup_dir")
PLATFORM_PATH_FIELDS = ("platform_dir",)


def _optional_str(data: dict[str, Any], key: str, where: str) -> str | None:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    logger.warning(f"Ignoring non-string '{key}' in {where}")
    return None


def parse_settings(data: Any) -> Settings:
    """Build Settings from a parsed settings document.

    ABOUTME: Platform entries without a string name are skipped with a warning
    ABOUTME: Duplicate platform names are kept; lookups return the first one
    ABOUTME: ${VAR} references in path fields are expanded here

    Args:
        data: Parsed JSON value

    Returns:
        Settings built from the document

    Raises:
        ParseError: If the document or its platforms list has the wrong type
    """
    if not isinstance(data, dict):
        raise ParseError("Settings document must be a JSON object")

    platforms_data = data.get("platforms", [])
    if not isinstance(platforms_data, list):
        raise ParseError("Settings field 'platforms' must be a list")

    expanded = expand_fields(data, SETTINGS_PATH_FIELDS)

    platforms: list[PlatformSettings] = []
    for index, entry in enumerate(platforms_data):
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str) or not entry["name"]:
            logger.warning(f"Skipping platforms[{index}]: entry needs a non-empty string 'name'")
            continue

        entry = expand_fields(entry, PLATFORM_PATH_FIELDS)
        where = f"platform '{entry['name']}'"
        platforms.append(PlatformSettings(
            name=entry["name"],
            platform_dir=_optional_str(entry, "platform_dir", where),
            output_filename=_optional_str(entry, "output_filename", where),
            batch=_optional_str(entry, "batch", where),
        ))

    return Settings(
        platforms=platforms,
        output_dir=_optional_str(expanded, "output_dir", "settings"),
        database_path=_optional_str(expanded, "database_path", "settings"),
        backup_dir=_optional_str(expanded, "backup_dir", "settings"),
        raw=data,
    )


def parse_registry(data: Any) -> Registry:
    """Build a Registry from a parsed tool database document.

    Raises:
        ParseError: If mcpServers is missing or an entry is malformed
    """
    if not isinstance(data, dict):
        raise ParseError("Tool database must be a JSON object")

    servers_data = data.get("mcpServers")
    if not isinstance(servers_data, dict):
        raise ParseError("Tool database missing required 'mcpServers' object")

    servers = {
        tool_id: ServerConfig.from_dict(tool_id, server_data)
        for tool_id, server_data in servers_data.items()
    }
    return Registry(servers=servers)


def load_settings(path: Path) -> Settings:
    """Load the settings document (comments allowed).

    Raises:
        NotFoundError: If the file doesn't exist
        DocumentIOError: If the file can't be read
        ParseError: If the content is invalid
    """
    return parse_settings(jsonc.load(path, allow_comments=True))


def load_registry(path: Path) -> Registry:
    """Load the tool database document (strict JSON).

    Raises:
        NotFoundError: If the file doesn't exist
        DocumentIOError: If the file can't be read
        ParseError: If the content is invalid
    """
    return parse_registry(jsonc.load(path, allow_comments=False))
