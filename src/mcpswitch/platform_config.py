# Per-platform config documents: read, write, and post-save batch command
import json
import logging
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from mcpswitch.config import CONFIG_PATH_TOKEN, DEFAULT_OUTPUT_FILENAME
from mcpswitch.errors import MCPSwitchError, NotFoundError, SideEffectError
from mcpswitch.models import ErrorInfo, SaveResult, Settings
from mcpswitch.notifier import BATCH_ERROR, Notifier
from mcpswitch.store import ConfigStore
from mcpswitch.utils import jsonc
from mcpswitch.utils.backup import create_backup
from mcpswitch.utils.paths import absolute_path

logger = logging.getLogger(__name__)

# ABOUTME: Runs a shell command line in a working directory, raising SideEffectError
CommandRunner = Callable[[str, Path], None]


def empty_document() -> dict[str, Any]:
    return {"mcpServers": {}}


def write_json_file(path: Path, data: dict[str, Any]) -> None:
    """Write JSON file with stable formatting.

    ABOUTME: Creates parent directories if needed
    ABOUTME: 2-space indentation, sorted keys, trailing newline
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    text = json.dumps(data, indent=2, sort_keys=True) + "\n"
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def resolve_config_path(settings: Settings, output_dir: Path, platform: str) -> Path:
    """Location of platform's document for the given settings and output directory."""
    entry = settings.find_platform(platform)
    platform_dir = (entry.platform_dir if entry else None) or platform
    filename = (entry.output_filename if entry else None) or DEFAULT_OUTPUT_FILENAME
    return absolute_path(Path(platform_dir) / filename, output_dir)


def render_batch_command(template: str, config_path: Path) -> str:
    """Substitute the written config path into a batch command template.

    ABOUTME: Every occurrence of {{config_file_path}} is replaced, unquoted

    Examples:
        >>> render_batch_command("run {{config_file_path}}", Path("/out/p/config.json"))
        'run /out/p/config.json'
    """
    return template.replace(CONFIG_PATH_TOKEN, str(config_path))


def run_shell_command(command: str, cwd: Path) -> None:
    """Run command through the shell and wait for it.

    Raises:
        SideEffectError: If the command cannot start or exits non-zero
    """
    try:
        completed = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise SideEffectError(command, None, str(e)) from e

    if completed.stdout:
        logger.debug(f"Batch command output: {completed.stdout.strip()}")
    if completed.returncode != 0:
        raise SideEffectError(command, completed.returncode, completed.stderr or "")


class PlatformConfigManager:
    """Reads and writes the selected-tools document of each platform.

    ABOUTME: Location: <output_dir>/<platform_dir or name>/<output_filename or config.json>
    ABOUTME: read() never fails outward; write() reports failure in SaveResult
    ABOUTME: Batch commands run detached and only ever produce a batch-error notification
    """

    def __init__(
        self,
        store: ConfigStore,
        notifier: Notifier,
        runner: CommandRunner | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._runner = runner if runner is not None else run_shell_command
        self._lock = threading.Lock()
        self._pending: list[threading.Thread] = []

    def config_path(self, platform: str) -> Path:
        """Absolute path of platform's config document."""
        settings, output_dir = self._store.snapshot()
        return resolve_config_path(settings, output_dir, platform)

    def read(self, platform: str) -> dict[str, Any]:
        """Load platform's config document.

        ABOUTME: Missing file is the normal empty case and logged as info
        ABOUTME: Unreadable or invalid files also yield empty, logged as errors

        Returns:
            The parsed document, or {"mcpServers": {}} when unavailable
        """
        if not platform or not platform.strip():
            logger.info("No platform given, returning empty config")
            return empty_document()

        path = self.config_path(platform)
        logger.info(f"Attempting to load config for platform '{platform}' from: {path}")
        try:
            data = jsonc.load(path, allow_comments=False)
        except NotFoundError:
            logger.info(f"No existing config for platform '{platform}' at {path}, returning empty config")
            return empty_document()
        except MCPSwitchError as e:
            logger.error(f"Error loading config for platform '{platform}' from {path}: {e}")
            return empty_document()

        if not isinstance(data, dict):
            logger.error(f"Config for platform '{platform}' at {path} is not a JSON object")
            return empty_document()

        logger.info(f"Loaded config for platform '{platform}'")
        return data

    def write(self, platform: str, document: dict[str, Any]) -> SaveResult:
        """Save platform's config document and start its batch command.

        Args:
            platform: Platform name
            document: Document to write, usually {"mcpServers": {...}}

        Returns:
            SaveResult; success is about the file write only
        """
        if not platform or not platform.strip():
            return SaveResult(success=False, error="No platform selected")

        # One snapshot so the path and the batch entry come from the same settings
        settings, output_dir = self._store.snapshot()
        entry = settings.find_platform(platform)
        path = resolve_config_path(settings, output_dir, platform)

        if settings.backup_dir and path.exists():
            backup_dir = absolute_path(settings.backup_dir, self._store.cwd)
            try:
                create_backup(path, backup_dir, platform)
            except OSError as e:
                logger.warning(f"Could not back up {path} to {backup_dir}: {e}")

        try:
            write_json_file(path, document)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save config to {path}: {e}")
            return SaveResult(success=False, path=path, error=str(e))

        logger.info(f"Config saved to: {path}")

        if entry is not None and entry.batch:
            self._start_batch(render_batch_command(entry.batch, path))

        return SaveResult(success=True, path=path)

    def wait_for_commands(self, timeout: float | None = None) -> bool:
        """Wait for batch commands started so far.

        Returns:
            True if none is still running
        """
        with self._lock:
            pending = list(self._pending)

        for thread in pending:
            thread.join(timeout)

        with self._lock:
            self._pending = [thread for thread in self._pending if thread.is_alive()]
            return not self._pending

    def _start_batch(self, command: str) -> None:
        logger.info(f"Executing batch command: {command}")
        thread = threading.Thread(
            target=self._execute,
            args=(command,),
            name="mcpswitch-batch",
            daemon=True,
        )
        with self._lock:
            self._pending = [t for t in self._pending if t.is_alive()]
            self._pending.append(thread)
        thread.start()

    def _execute(self, command: str) -> None:
        try:
            self._runner(command, self._store.cwd)
        except SideEffectError as e:
            logger.error(f"Batch command failed: {e}")
            self._notifier.emit(BATCH_ERROR, ErrorInfo(message=str(e)))
        except Exception as e:
            logger.exception("Batch command runner crashed")
            self._notifier.emit(BATCH_ERROR, ErrorInfo(message=f"Batch command failed: {e}"))
