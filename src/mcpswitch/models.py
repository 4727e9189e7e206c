# Core data models for mcpswitch
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mcpswitch.errors import ParseError


@dataclass(frozen=True)
class ServerConfig:
    """Invocation of one MCP server, as listed in the tool database.

    ABOUTME: Frozen so registry snapshots can be shared between threads
    ABOUTME: env is optional and omitted from output when empty
    """
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, tool_id: str, data: Any) -> "ServerConfig":
        """Build a ServerConfig from its JSON object.

        Raises:
            ParseError: If command is missing or args/env have the wrong type
        """
        if not isinstance(data, dict):
            raise ParseError(f"Server '{tool_id}' must be an object")

        command = data.get("command")
        if not isinstance(command, str):
            raise ParseError(f"Server '{tool_id}' missing required 'command' field")

        args = data.get("args", [])
        if not isinstance(args, list) or not all(isinstance(arg, str) for arg in args):
            raise ParseError(f"Server '{tool_id}' field 'args' must be a list of strings")

        env = data.get("env", {})
        if not isinstance(env, dict) or not all(isinstance(v, str) for v in env.values()):
            raise ParseError(f"Server '{tool_id}' field 'env' must map names to strings")

        return cls(command=command, args=list(args), env=dict(env))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "command": self.command,
            "args": list(self.args),
        }
        if self.env:
            result["env"] = dict(self.env)
        return result


@dataclass(frozen=True)
class PlatformSettings:
    """One entry of the settings document's platforms list."""
    name: str
    platform_dir: str | None = None
    output_filename: str | None = None
    batch: str | None = None


@dataclass(frozen=True)
class Settings:
    """Parsed settings document.

    ABOUTME: raw keeps the document as loaded so unknown keys reach the UI
    ABOUTME: Platform lookups are by name, first match wins
    """
    platforms: list[PlatformSettings] = field(default_factory=list)
    output_dir: str | None = None
    database_path: str | None = None
    backup_dir: str | None = None
    raw: dict[str, Any] = field(default_factory=lambda: {"platforms": []})

    @classmethod
    def default(cls) -> "Settings":
        """Safe fallback used when settings.json cannot be loaded."""
        return cls()

    def find_platform(self, name: str) -> PlatformSettings | None:
        for platform in self.platforms:
            if platform.name == name:
                return platform
        return None

    def platform_names(self) -> list[str]:
        return [platform.name for platform in self.platforms]

    def to_dict(self) -> dict[str, Any]:
        return dict(self.raw)


@dataclass(frozen=True)
class Registry:
    """Parsed tool database: tool id -> server invocation."""
    servers: dict[str, ServerConfig] = field(default_factory=dict)

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self.servers

    def __len__(self) -> int:
        return len(self.servers)

    def ids(self) -> list[str]:
        return list(self.servers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mcpServers": {
                tool_id: server.to_dict() for tool_id, server in self.servers.items()
            }
        }


@dataclass(frozen=True)
class ErrorInfo:
    """Payload of every error notification."""
    message: str
    path: Path | None = None

    def to_dict(self) -> dict[str, str]:
        result = {"message": self.message}
        if self.path is not None:
            result["path"] = str(self.path)
        return result


@dataclass(frozen=True)
class SaveResult:
    """Outcome of saving a per-platform config document.

    ABOUTME: success reflects the file write only, never the batch command
    """
    success: bool
    path: Path | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "path": str(self.path)}
        return {"success": False, "error": self.error}
