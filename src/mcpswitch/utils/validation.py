# ABOUTME: Validation of settings and tool database contents
# ABOUTME: Reports problems as errors or warnings, never raises
import os
import shutil
from collections import Counter
from dataclasses import dataclass

from mcpswitch.config import CONFIG_PATH_TOKEN
from mcpswitch.models import Registry, ServerConfig, Settings
from mcpswitch.utils.env import find_env_references


@dataclass(frozen=True)
class ValidationError:
    """Represents a validation error or warning.

    ABOUTME: subject names the tool or platform the message is about
    ABOUTME: Severity level distinguishes between blocking errors and warnings
    """
    subject: str
    message: str
    severity: str  # 'error' or 'warning'


def validate_command_exists(command: str) -> ValidationError | None:
    """Validate that a command exists on the system.

    ABOUTME: Uses shutil.which() for cross-platform command lookup
    ABOUTME: Returns None if command found, ValidationError otherwise

    Examples:
        >>> validate_command_exists("nonexistent_cmd")
        ValidationError(subject='', message='Command not found: nonexistent_cmd', severity='error')
    """
    if shutil.which(command) is None:
        return ValidationError(
            subject="",
            message=f"Command not found: {command}",
            severity="error"
        )
    return None


def _unset_references(value: str, where: str, subject: str) -> list[ValidationError]:
    return [
        ValidationError(
            subject=subject,
            message=f"Environment variable '${var_name}' not set (referenced in {where})",
            severity="warning"
        )
        for var_name in find_env_references(value)
        if var_name not in os.environ
    ]


def validate_server(tool_id: str, server: ServerConfig) -> list[ValidationError]:
    """Validate one tool database entry.

    ABOUTME: Missing command is an error, unset ${VAR} references are warnings
    """
    errors: list[ValidationError] = []

    cmd_error = validate_command_exists(server.command)
    if cmd_error:
        errors.append(ValidationError(
            subject=tool_id,
            message=cmd_error.message,
            severity=cmd_error.severity
        ))

    errors.extend(_unset_references(server.command, "command", tool_id))
    for arg in server.args:
        errors.extend(_unset_references(arg, "args", tool_id))
    for key, value in server.env.items():
        errors.extend(_unset_references(value, f"env.{key}", tool_id))

    return errors


def validate_registry(registry: Registry) -> list[ValidationError]:
    errors: list[ValidationError] = []
    for tool_id, server in registry.servers.items():
        errors.extend(validate_server(tool_id, server))
    return errors


def validate_settings(settings: Settings) -> list[ValidationError]:
    """Validate the settings document.

    ABOUTME: Duplicate platform names shadow each other (only the first is used)
    ABOUTME: A batch template without the path placeholder is likely a mistake
    """
    errors: list[ValidationError] = []

    counts = Counter(settings.platform_names())
    for name, count in counts.items():
        if count > 1:
            errors.append(ValidationError(
                subject=name,
                message=f"Platform '{name}' is defined {count} times; only the first is used",
                severity="warning"
            ))

    raw_platforms = settings.raw.get("platforms", [])
    if isinstance(raw_platforms, list) and len(raw_platforms) != len(settings.platforms):
        skipped = len(raw_platforms) - len(settings.platforms)
        errors.append(ValidationError(
            subject="platforms",
            message=f"{skipped} platform entr{'y' if skipped == 1 else 'ies'} without a valid name ignored",
            severity="warning"
        ))

    for platform in settings.platforms:
        if platform.batch and CONFIG_PATH_TOKEN not in platform.batch:
            errors.append(ValidationError(
                subject=platform.name,
                message=f"Batch command does not reference {CONFIG_PATH_TOKEN}",
                severity="warning"
            ))

    return errors
