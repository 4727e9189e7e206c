# ABOUTME: Path helpers and the tool database path priority chain
# ABOUTME: Resolution never fails; absence of every source yields the default
import logging
import os
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


def absolute_path(path: str | Path, base: Path) -> Path:
    """Return a normalized absolute path, resolving relative paths against base.

    ABOUTME: Normalizes '..' and '.' lexically, symlinks are left alone
    ABOUTME: Expands a leading '~' to the user's home directory
    """
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return Path(os.path.normpath(candidate))


def find_prefixed_arg(argv: Sequence[str], prefix: str) -> str | None:
    """Return the value of the first argument starting with prefix, if any.

    Examples:
        >>> find_prefixed_arg(["app", "--database=db.json"], "--database=")
        'db.json'
        >>> find_prefixed_arg(["app"], "--database=") is None
        True
    """
    for arg in argv:
        if arg.startswith(prefix):
            return arg[len(prefix):]
    return None


def resolve_database_path(
    declared: object,
    argv: Sequence[str],
    default_name: str,
    cwd: Path,
    arg_prefix: str = "--database=",
) -> Path:
    """Resolve the active tool database path.

    ABOUTME: Priority: settings-declared path, then start argument, then default
    ABOUTME: A declared value that is not a non-empty string is ignored

    Args:
        declared: database_path value from the settings document (any type)
        argv: Process start arguments
        default_name: File name used when nothing else applies
        cwd: Working directory used for relative paths
        arg_prefix: Start argument prefix carrying the path

    Returns:
        Normalized absolute path
    """
    if isinstance(declared, str) and declared:
        path = absolute_path(declared, cwd)
        logger.info(f"Using database path from settings: {path}")
        return path

    from_arg = find_prefixed_arg(argv, arg_prefix)
    if from_arg:
        path = absolute_path(from_arg, cwd)
        logger.info(f"Using database path from command-line argument: {path}")
        return path

    path = absolute_path(default_name, cwd)
    logger.info(f"Using default database path: {path}")
    return path
