# ABOUTME: Backup of per-platform config files before they are overwritten.
# ABOUTME: Timestamped copies, newest five kept per platform.
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

MAX_BACKUPS_PER_PLATFORM = 5

# ABOUTME: Matches {platform}_{YYYYMMDD}_{HHMMSS}.{ext}, e.g. claude_20260108_143022.json
BACKUP_PATTERN = re.compile(r"^(.+?)_(\d{8}_\d{6})\.(.+)$")

# ABOUTME: Characters allowed in the platform part of a backup name
UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9.-]+")


def backup_name(platform: str, source_path: Path, now: datetime | None = None) -> str:
    """Build the backup file name for a platform config.

    ABOUTME: Underscores and other separators in the platform name become '-'
    ABOUTME: so the timestamp can be split off unambiguously

    Examples:
        >>> backup_name("claude", Path("out/claude/config.json"), datetime(2026, 1, 8, 14, 30, 22))
        'claude_20260108_143022.json'
    """
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    safe_platform = UNSAFE_NAME_CHARS.sub("-", platform).strip("-") or "platform"
    extension = source_path.suffix or ".bak"
    return f"{safe_platform}_{timestamp}{extension}"


def create_backup(source_path: Path, backup_dir: Path, platform: str) -> Path:
    """Create a timestamped backup of a platform config file.

    ABOUTME: Uses shutil.copy2() to preserve file metadata
    ABOUTME: Creates backup_dir if it doesn't exist

    Args:
        source_path: Path to file to backup
        backup_dir: Directory where backup should be created
        platform: Platform name, used as the backup name prefix

    Returns:
        Path to created backup file

    Raises:
        FileNotFoundError: If source_path doesn't exist
        OSError: If backup creation fails
    """
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {source_path}")

    backup_dir.mkdir(parents=True, exist_ok=True)

    backup_path = backup_dir / backup_name(platform, source_path)
    shutil.copy2(source_path, backup_path)
    logger.info(f"Backed up {source_path} to {backup_path}")

    cleanup_old_backups(backup_dir)

    return backup_path


def cleanup_old_backups(
    backup_dir: Path,
    max_backups_per_platform: int = MAX_BACKUPS_PER_PLATFORM,
) -> list[Path]:
    """Remove old backup files, keeping only the most recent per platform.

    ABOUTME: Logs warnings on errors but does not raise exceptions

    Args:
        backup_dir: Directory containing backup files
        max_backups_per_platform: Maximum backups to keep per platform

    Returns:
        List of paths that were deleted
    """
    deleted_files: list[Path] = []

    if not backup_dir.exists():
        return deleted_files

    backups_by_platform: dict[str, list[tuple[str, Path]]] = {}

    for file_path in backup_dir.iterdir():
        if not file_path.is_file():
            continue

        match = BACKUP_PATTERN.match(file_path.name)
        if not match:
            continue

        backups_by_platform.setdefault(match.group(1), []).append((match.group(2), file_path))

    for backups in backups_by_platform.values():
        # Newest first
        backups.sort(key=lambda x: x[0], reverse=True)

        for _timestamp, file_path in backups[max_backups_per_platform:]:
            try:
                file_path.unlink()
                deleted_files.append(file_path)
                logger.debug(f"Deleted old backup: {file_path}")
            except OSError as e:
                logger.warning(f"Failed to delete old backup {file_path}: {e}")

    return deleted_files
