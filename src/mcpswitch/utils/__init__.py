# ABOUTME: Utility modules for mcpswitch
# ABOUTME: Exports comment-tolerant JSON loading, path resolution, env expansion and backups

from mcpswitch.utils.backup import cleanup_old_backups, create_backup
from mcpswitch.utils.env import expand_env_vars
from mcpswitch.utils.jsonc import strip_comments
from mcpswitch.utils.paths import absolute_path, resolve_database_path

__all__ = [
    "absolute_path",
    "cleanup_old_backups",
    "create_backup",
    "expand_env_vars",
    "resolve_database_path",
    "strip_comments",
]
