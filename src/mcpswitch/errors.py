# ABOUTME: Exception hierarchy for mcpswitch
# ABOUTME: Every error raised by the package derives from MCPSwitchError
from pathlib import Path


class MCPSwitchError(Exception):
    """Base class for all mcpswitch errors."""


class ParseError(MCPSwitchError, ValueError):
    """Document is not valid JSON or does not have the expected shape."""


class NotFoundError(MCPSwitchError, FileNotFoundError):
    """Document file does not exist."""


class DocumentIOError(MCPSwitchError, OSError):
    """Document could not be read or written for a reason other than absence."""


class SideEffectError(MCPSwitchError):
    """Post-save batch command failed.

    ABOUTME: Never changes the outcome of the save that triggered the command
    """

    def __init__(self, command: str, returncode: int | None, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            message = f"Command could not be started: {command}"
        else:
            message = f"Command failed with exit code {returncode}: {command}"
        if stderr:
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)


class RegistryUnavailableError(MCPSwitchError):
    """Tool registry is in its unavailable state (last reload failed)."""


class RegistryLoadError(MCPSwitchError):
    """Initial tool registry load failed; the application cannot continue.

    ABOUTME: Raised only from ConfigStore.start(), reloads never raise this
    """

    def __init__(self, path: Path, cause: Exception) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Could not load tool database.\nPath: {path}\nError: {cause}")
